"""Tests for component definitions and the registry."""

import pytest

from immortal.components import ComponentDefinition, ComponentRegistry, builtin_components
from immortal.core.errors import ComponentNotFoundError
from immortal.core.ir import ANY, ComponentCategory, Field, Node, Port, Position


def make_definition() -> ComponentDefinition:
    return (
        ComponentDefinition(
            id="custom.widget",
            name="Widget",
            category=ComponentCategory.CUSTOM,
            description="A test widget",
        )
        .with_field(Field.string("label").mark_required())
        .with_input(Port.data_in("in", ANY))
        .with_output(Port.data_out("out", ANY))
        .with_config("size", 3)
        .with_tags("test", "widget", "test")
    )


@pytest.fixture
def registry() -> ComponentRegistry:
    return ComponentRegistry.with_builtins()


class TestCatalog:
    """Test the built-in catalog."""

    def test_sixteen_builtins(self) -> None:
        assert len(builtin_components()) == 16

    def test_unique_ids(self) -> None:
        ids = [d.id for d in builtin_components()]
        assert len(ids) == len(set(ids))

    def test_categories(self, registry: ComponentRegistry) -> None:
        assert registry.categories() == [
            ComponentCategory.AUTH,
            ComponentCategory.DATA,
            ComponentCategory.API,
            ComponentCategory.STORAGE,
            ComponentCategory.LOGIC,
        ]
        assert len(registry.by_category(ComponentCategory.AUTH)) == 4

    @pytest.mark.parametrize(
        "component_id",
        ["data.entity", "auth.login", "auth.register", "auth.logout", "auth.session", "api.rest"],
    )
    def test_core_types_use_node_factories(
        self, registry: ComponentRegistry, component_id: str
    ) -> None:
        node = registry.instantiate(component_id, "Thing")
        assert node.component_type == component_id
        assert node.name == "Thing"
        assert len(node.ports) > 0

    def test_entity_matches_factory(self, registry: ComponentRegistry) -> None:
        node = registry.instantiate("data.entity", "User")
        expected = Node.new_entity("User")
        assert [f.name for f in node.fields] == [f.name for f in expected.fields]
        assert node.get_output_port("entity") is not None


class TestRegistry:
    """Test registration, lookup and search."""

    def test_register_and_get(self) -> None:
        registry = ComponentRegistry()
        registry.register(make_definition())
        assert "custom.widget" in registry
        assert registry.contains("custom.widget")
        assert registry.get("custom.widget").name == "Widget"
        assert registry.ids() == ["custom.widget"]

    def test_register_replaces(self) -> None:
        registry = ComponentRegistry()
        registry.register(make_definition())
        replacement = ComponentDefinition(
            id="custom.widget", name="Gadget", category=ComponentCategory.CUSTOM
        )
        registry.register(replacement)
        assert len(registry) == 1
        assert registry.require("custom.widget").name == "Gadget"

    def test_unregister(self) -> None:
        registry = ComponentRegistry()
        registry.register(make_definition())
        assert registry.unregister("custom.widget") is not None
        assert registry.unregister("custom.widget") is None

    def test_require_missing(self, registry: ComponentRegistry) -> None:
        with pytest.raises(ComponentNotFoundError):
            registry.require("nope.missing")

    def test_instantiate_missing(self, registry: ComponentRegistry) -> None:
        with pytest.raises(ComponentNotFoundError):
            registry.instantiate("nope.missing")

    def test_search_is_case_insensitive(self, registry: ComponentRegistry) -> None:
        ids = [d.id for d in registry.search("SIGNUP")]
        assert ids == ["auth.register"]

    def test_search_tags(self, registry: ComponentRegistry) -> None:
        ids = [d.id for d in registry.search("sql")]
        assert "data.query" in ids
        assert "storage.database" in ids

    def test_iteration_order(self, registry: ComponentRegistry) -> None:
        assert [d.id for d in registry][:2] == ["auth.login", "auth.register"]

    def test_instantiate_at(self, registry: ComponentRegistry) -> None:
        node = registry.instantiate_at("logic.condition", 10, 20)
        assert node.position == Position(x=10, y=20)


class TestDefinition:
    """Test generic instantiation from a definition."""

    def test_instantiate_copies(self) -> None:
        definition = make_definition()
        first = definition.instantiate()
        second = definition.instantiate("Other")

        assert first.name == "Widget"
        assert second.name == "Other"
        assert first.fields[0].id != second.fields[0].id
        assert first.get_config_int("size") == 3
        assert first.description == "A test widget"
        assert first.tags == ["test", "widget"]

        first.fields[0].name = "changed"
        assert definition.fields[0].name == "label"

    def test_matches(self) -> None:
        definition = make_definition()
        assert definition.matches("widg")
        assert definition.matches("A TEST")
        assert not definition.matches("zzz")
        assert definition.has_tag("WIDGET")
