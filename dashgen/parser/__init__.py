"""Entity metadata extraction from annotated definition files."""
from dashgen.parser.extractor import extract_entities, parse_definition_file, load_entities

__all__ = ["extract_entities", "parse_definition_file", "load_entities"]
