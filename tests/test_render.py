"""Tests for template rendering of the per-entity artifacts."""
from pathlib import Path

import pytest

from dashgen.core.config import Settings
from dashgen.generators.crud_gen.render import TemplateRenderer, build_entity_context
from dashgen.generators.crud_gen.render_entity import (
    generate_compound_indexes,
    generate_field_indexes,
    generate_validation,
    has_indexes,
    has_required_fields,
    index_imports,
    uses_rule,
)
from dashgen.generators.crud_gen.types import ArtifactKind
from dashgen.generators.crud_gen.utils import entity_targets, primary_entities
from dashgen.parser import parse_definition_file
from dashgen.parser.types import EntityDescriptor, FieldDescriptor

FIXTURES = Path(__file__).parent / "fixtures" / "project"
MODULE = "github.com/acme/shop"


def _settings():
    return Settings(module_path=MODULE)


def _user():
    return parse_definition_file(FIXTURES / "model" / "user" / "data.go", FIXTURES)[0]


def _order():
    return parse_definition_file(FIXTURES / "model" / "order" / "data.go", FIXTURES)[0]


def _bare(name="Tag", group="model/tag"):
    return EntityDescriptor(
        source_group_path=group,
        name=name,
        plural_name=name + "s",
        storage_collection_name=name.lower() + "s",
        fields=(FieldDescriptor(name="Label", type="string", go_type="string"),),
    )


def test_entity_context_names():
    context = build_entity_context(_user(), _settings())

    assert context["module"] == MODULE
    assert context["package"] == "user"
    assert context["entity_lower"] == "user"
    assert context["entity_plural"] == "Users"
    assert context["db_name"] == "users"
    assert context["deleted_db_name"] == "users_deleted"
    assert context["constant_name"] == "ParamUserID"
    assert context["constant_value"] == "user_id"
    assert context["route_path"] == "/v1/user"
    assert context["list_route_path"] == "/v1/users"
    assert context["init_func"] == "Init"
    assert context["constants_import"] == "constants"


def test_secondary_entity_gets_qualified_names():
    profile = _bare("Profile", "model/user")
    context = build_entity_context(profile, _settings(), primary=False)

    assert context["init_func"] == "InitProfile"
    assert context["repo_getter"] == "GetProfileRepository"
    assert [t.destination_path for t in entity_targets(profile, primary=False)][:2] == [
        "model/user/profile_init.go",
        "model/user/profile_repository.go",
    ]


def test_primary_entity_selection():
    user = _user()
    profile = _bare("Profile", "model/user")
    audit = _bare("AuditLog", "model/audit")

    primary = primary_entities([profile, user, audit])
    assert primary == {("model/user", "User"), ("model/audit", "AuditLog")}


def test_entity_targets_paths():
    targets = entity_targets(_user())

    assert [(t.destination_path, t.kind) for t in targets] == [
        ("model/user/init.go", ArtifactKind.MODEL_INIT),
        ("model/user/repository.go", ArtifactKind.REPOSITORY),
        ("internal/action/user.go", ArtifactKind.ACTION),
        ("internal/api/user.go", ArtifactKind.API),
        ("client/user.go", ArtifactKind.CLIENT),
    ]


def test_render_model_init_indexes():
    content = TemplateRenderer(_settings()).render(ArtifactKind.MODEL_INIT, _user())

    assert content.startswith("package user\n")
    assert '\t"go.mongodb.org/mongo-driver/bson"\n' in content
    assert '\t"go.mongodb.org/mongo-driver/mongo/options"\n' in content
    assert f'\t"{MODULE}/internal/utils"\n' in content
    assert 'NewMongoDBGenericCollection[User]("users")' in content
    assert 'NewMongoDBGenericCollection[User]("users_deleted")' in content
    assert "func Init(database *mongo.Database) error {" in content
    assert 'userCollection.CreateIndex(bson.D{{Key: "name", Value: 1}}, nil)' in content
    assert "Unique: utils.GetPointer(true)," in content
    assert "// Compound index: name(asc), created_at(desc)" in content
    assert "// Compound index: email(text)" in content
    assert '{Key: "email", Value: "text"},' in content
    # field level first, then compound
    assert content.index("Index for Name field") < content.index("Compound index: email(asc) (unique)")
    assert "\n    " not in content


def test_render_model_init_without_indexes():
    content = TemplateRenderer(_settings()).render(ArtifactKind.MODEL_INIT, _bare())

    assert "\t// No field indexes defined\n" in content
    assert "\t// No compound indexes defined\n" in content
    assert "mongo-driver/bson" not in content
    assert "internal/utils" not in content


def test_render_api_validation_and_imports():
    content = TemplateRenderer(_settings()).render(ArtifactKind.API, _user())

    assert '\t"strings"\n' in content
    assert '\t"regexp"\n' in content
    assert f'\t"{MODULE}/model/user"\n' in content
    assert f'\t"{MODULE}/constants"\n' in content
    assert 'if strings.TrimSpace(userData.Name) == "" {' in content
    assert "if len(userData.Name) < 2 {" in content
    assert "if len(userData.Name) > 100 {" in content
    assert 'if userData.Email != "" && !isValidUserEmail(userData.Email) {' in content
    assert "if userData.Age > 150 {" in content
    assert "func isValidUserEmail(email string) bool {" in content
    assert "req.GetParam(constants.ParamUserID)" in content
    assert "func QueryUsers(" in content
    # validation runs in create and update
    assert content.count("// Field validation") == 2


def test_render_api_without_validation_has_no_std_imports():
    entity = EntityDescriptor(
        source_group_path="model/tag",
        name="Tag",
        plural_name="Tags",
        storage_collection_name="tags",
        fields=(FieldDescriptor(name="Label", type="string"),),
    )
    content = TemplateRenderer(_settings()).render(ArtifactKind.API, entity)

    assert '"strings"' not in content
    assert '"regexp"' not in content
    assert "// Field validation" not in content


def test_unsupported_metadata_becomes_todo():
    order = _order()
    renderer = TemplateRenderer(_settings())
    api = renderer.render(ArtifactKind.API, order)
    model_init = renderer.render(ArtifactKind.MODEL_INIT, order)

    assert "// TODO: Unsupported validation rule 'oneof=new paid shipped' for field Status" in api
    assert "// TODO: Add max validation for order.Notes (type: *string)" in api
    assert "if len(orderData.Items) == 0 {" in api
    assert "if len(orderData.Items) < 1 {" in api
    assert "// TODO: Unsupported index type 'weird' for field Status" in model_init
    assert 'bson.D{{Key: "location", Value: "2dsphere"}}' in model_init
    assert 'bson.D{{Key: "customer_id", Value: -1}}' in model_init
    assert 'Name: utils.GetPointer("customer_recent"),' in model_init
    assert "Sparse: utils.GetPointer(true)," in model_init


def test_render_action_repository_client():
    renderer = TemplateRenderer(_settings())
    category = parse_definition_file(
        FIXTURES / "model" / "catalog" / "category" / "category.entity.yaml", FIXTURES
    )[0]

    action = renderer.render(ArtifactKind.ACTION, category)
    assert f'\t"{MODULE}/model/catalog/category"\n' in action
    assert "func ListCategories(query *common.Query[category.Category])" in action
    assert "category.GetRepository().Create(data)" in action

    repository = renderer.render(ArtifactKind.REPOSITORY, category)
    assert "type CategoryRepository interface {" in repository
    assert "func (r *mongoRepository) DeleteByCategoryID(categoryID string) error {" in repository

    client = renderer.render(ArtifactKind.CLIENT, category)
    assert 'c.makeRequest("QUERY", "/v1/categories", nil, query, response)' in client
    assert '"category_id": id,' in client


def test_routes_are_rendered_as_fragments():
    renderer = TemplateRenderer(_settings())

    with pytest.raises(ValueError):
        renderer.render(ArtifactKind.ROUTES, _user())

    fragments = renderer.render_route_fragments(_user())
    assert fragments["import_line"] == f'\t"{MODULE}/model/user"'
    assert fragments["init_call"].splitlines()[0] == "\tif err := user.Init(database); err != nil {"
    assert 'server.SetHandler(common.APIMethod.POST, "/v1/user", api.CreateUser)' in fragments["routes"]


def test_rendering_is_deterministic():
    first = TemplateRenderer(_settings()).render(ArtifactKind.API, _order())
    second = TemplateRenderer(_settings()).render(ArtifactKind.API, _order())
    assert first == second


def test_helper_predicates():
    user = _user()
    fields = list(user.fields)

    assert has_required_fields(fields)
    assert has_required_fields(fields, "string")
    assert not has_required_fields(fields, "timestamp")
    assert uses_rule(fields, "email", "string")
    assert not uses_rule(fields, "email", "int")
    assert has_indexes(fields, user.indexes)
    assert not has_indexes([], [])
    assert index_imports([], [], MODULE) == []


def test_index_generators_no_op_comments():
    assert generate_field_indexes([], "tag") == "\t// No field indexes defined"
    assert generate_compound_indexes([], "tag") == "\t// No compound indexes defined"
    assert generate_validation([], "tag") == ""
