"""Name derivation rules shared by extraction and rendering."""


def to_snake_case(name: str) -> str:
    """Underscore before every uppercase letter but the first: APIKey -> a_p_i_key.

    Acronyms are not collapsed; collection names derived from this are persisted.
    """
    out = []
    for i, ch in enumerate(name):
        if i > 0 and "A" <= ch <= "Z":
            out.append("_")
        out.append(ch.lower())
    return "".join(out)


def lower_first(name: str) -> str:
    return name[:1].lower() + name[1:]


def naive_plural(name: str) -> str:
    """Pluralize by suffix only: Category -> Categories, Order -> Orders.

    Irregular plurals (Person, Status, Box) are not handled.
    """
    if name.endswith("y"):
        return name[:-1] + "ies"
    return name + "s"


def default_collection_name(name: str) -> str:
    return to_snake_case(name) + "s"
