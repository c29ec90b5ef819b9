import pytest

from autodocs.base import ConstraintDescriptor, PropertyDescriptor, TypeDescriptor, TypeKind
from autodocs.deterministic.example_generator import FORMAT_EXAMPLES, ExampleGenerator

STRING = TypeDescriptor(kind=TypeKind.PRIMITIVE, name="string")
NUMBER = TypeDescriptor(kind=TypeKind.PRIMITIVE, name="number")
BOOLEAN = TypeDescriptor(kind=TypeKind.PRIMITIVE, name="boolean")


def _prop(name: str, type_: TypeDescriptor = STRING, **kwargs) -> PropertyDescriptor:
    return PropertyDescriptor(name=name, type=type_, required=True, **kwargs)


@pytest.fixture
def generator():
    return ExampleGenerator()


class TestPrecedence:
    def test_email_name_wins_over_url_constraint(self, generator):
        url_constraint = ConstraintDescriptor(kind="IsUrl", constraints=(("format", "uri"),))
        assert generator.example_for(_prop("email", constraints=(url_constraint,))) == "user@example.com"

    def test_url_heuristic_without_format(self, generator):
        assert generator.example_for(_prop("contactUrl")) == "https://example.com"

    def test_declared_format_beats_name(self, generator):
        uuid_type = TypeDescriptor(kind=TypeKind.PRIMITIVE, name="string", format="uuid")
        assert generator.example_for(_prop("email", uuid_type)) == FORMAT_EXAMPLES["uuid"]

    def test_unrecognized_format_falls_through(self, generator):
        odd = TypeDescriptor(kind=TypeKind.PRIMITIVE, name="string", format="hostname")
        assert generator.example_for(_prop("city", odd)) == "New York"

    def test_type_fallback(self, generator):
        assert generator.example_for(_prop("zzz")) == "example"
        assert generator.example_for(_prop("zzz", NUMBER)) == 42

    def test_unknown_type_yields_none(self, generator):
        unknown = TypeDescriptor(kind=TypeKind.UNKNOWN, name="Blob")
        assert generator.example_for(_prop("payload", unknown)) is None

    @pytest.mark.parametrize("name, type_", [
        ("status", TypeDescriptor(kind=TypeKind.UNION, name="'x' | 'y'", union_members=("'x'", "'y'"))),
        ("parentId", TypeDescriptor(kind=TypeKind.REFERENCE, name="Node")),
        ("email", TypeDescriptor(kind=TypeKind.UNKNOWN, name="Map<string, string>")),
    ])
    def test_names_ignored_for_non_primitive_leaves(self, generator, name, type_):
        assert generator.example_for(_prop(name, type_)) is None

    def test_array_of_references(self, generator):
        children = TypeDescriptor(kind=TypeKind.ARRAY, name="Node[]", is_array=True,
                                  element_type=TypeDescriptor(kind=TypeKind.REFERENCE, name="Node"))
        assert generator.example_for(_prop("childIds", children)) == [None]


class TestNameHeuristics:
    @pytest.mark.parametrize("name, expected", [
        ("firstName", "John"),
        ("last_name", "Doe"),
        ("userName", "johndoe"),
        ("displayName", "Example Name"),
        ("mobile", "+1234567890"),
        ("zipCode", "10001"),
        ("userId", 1),
        ("birthDate", "2026-01-19"),
        ("updatedAt", "2026-01-19T12:00:00Z"),
        ("status", "active"),
        ("role", "user"),
        ("title", "Example Title"),
        ("price", 99.99),
        ("quantity", 10),
    ])
    def test_names(self, generator, name, expected):
        assert generator.example_for(_prop(name)) == expected

    def test_boolean_prefix(self, generator):
        assert generator.example_for(_prop("isActive", BOOLEAN)) is True


class TestStructured:
    def test_array_of_primitives(self, generator):
        tags = TypeDescriptor(kind=TypeKind.ARRAY, name="string[]", is_array=True, element_type=STRING)
        assert generator.example_for(_prop("tags", tags)) == ["example"]

    def test_enum_first_value(self, generator):
        role = TypeDescriptor(kind=TypeKind.ENUM, name="Role", enum_values=("admin", "user"))
        assert generator.example_for(_prop("role", role)) == "admin"

    def test_object_assembled(self, generator):
        address = TypeDescriptor(kind=TypeKind.OBJECT, name="Address", properties=(
            _prop("city"),
            _prop("zip"),
        ))
        assert generator.example_for(_prop("address", address)) == {"city": "New York", "zip": "10001"}

    def test_deterministic(self, generator):
        props = (_prop("email"), _prop("count", NUMBER))
        assert generator.example_for_object(props) == generator.example_for_object(props)
