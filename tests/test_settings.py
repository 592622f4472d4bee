"""
Tests for odata_client.config and odata_client.odata.metadata modules.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from odata_client.config.parsers import EdmParser, EntityParser, EnumParser
from odata_client.config.schema import ApiConfig, EnumConfig
from odata_client.config.settings import ODataSettings
from odata_client.core.errors import ConfigurationError
from odata_client.models.model import ODataModel
from odata_client.odata.metadata import EntitySetInfo, ODataMetadata, _strip_ns


class TestEdmParser:
    """Tests for EdmParser."""

    def test_datetime_offset(self):
        parser = EdmParser("Edm.DateTimeOffset")
        value = parser.deserialize("2024-01-31T10:00:00.123Z")
        assert value == datetime(2024, 1, 31, 10, 0, 0, 123000, tzinfo=timezone.utc)
        assert parser.serialize(value) == "2024-01-31T10:00:00.123Z"

    def test_datetime_offset_keeps_offset(self):
        value = EdmParser("Edm.DateTimeOffset").deserialize("2024-01-31T10:00:00+02:00")
        assert value.utcoffset() == timedelta(hours=2)

    def test_date(self):
        parser = EdmParser("Edm.Date")
        assert parser.deserialize("2024-01-31") == date(2024, 1, 31)
        assert parser.serialize(date(2024, 1, 31)) == "2024-01-31"

    def test_unparsable_value_is_kept(self):
        assert EdmParser("Edm.Date").deserialize("not-a-date") == "not-a-date"

    def test_other_types_pass_through(self):
        parser = EdmParser("Edm.String")
        assert parser.deserialize("2024-01-31") == "2024-01-31"
        assert parser.serialize("x") == "x"

    def test_decimal_is_sent_as_number(self):
        assert EdmParser("Edm.Decimal").serialize(Decimal("1.25")) == 1.25


class TestEnumParser:
    """Tests for EnumParser."""

    @pytest.fixture
    def flags(self):
        return EnumParser(EnumConfig(name="Color", members={"Red": 1, "Green": 2, "Blue": 4}, flags=True), "Shop")

    def test_flags_round_trip(self, flags):
        assert flags.deserialize("Red,Blue") == 5
        assert flags.serialize(5) == "Red,Blue"

    def test_plain_enum(self):
        parser = EnumParser(EnumConfig(name="Size", members={"Small": 0, "Large": 1}), "Shop")
        assert parser.deserialize("Large") == 1
        assert parser.serialize(0) == "Small"
        assert parser.deserialize("Unknown") == "Unknown"

    def test_to_literal(self, flags):
        assert flags.type == "Shop.Color"
        assert flags.to_literal(1) == "Shop.Color'Red'"
        assert flags.to_literal(6, string_as_enum=True) == "'Green,Blue'"


class TestApiConfig:
    """Tests for the pydantic configuration models."""

    def test_root_gets_trailing_slash(self):
        assert ApiConfig(service_root_url="https://host/odata").service_root_url == "https://host/odata/"

    def test_root_rejects_query_string(self):
        with pytest.raises(ValueError):
            ApiConfig(service_root_url="https://host/odata/?sap-client=100")


class TestODataSettings:
    """Tests for ODataSettings lookups."""

    def test_invalid_config_raises(self):
        with pytest.raises(ConfigurationError):
            ODataSettings({"service_root_url": "https://host/?a=1"})

    def test_fields_for_type(self, settings):
        names = [f.name for f in settings.fields_for_type("Shop.Product")]
        assert names[:3] == ["ID", "Name", "Price"]
        origin = settings.entity_parser_for_type("Shop.Product").field("Origin")
        assert origin.complex is True
        tags = settings.entity_parser_for_type("Shop.Product").field("Tags")
        assert tags.collection is True and not tags.complex

    def test_alias_qualified_names(self, settings):
        assert settings.parser_for_type("S.Product") is settings.parser_for_type("Shop.Product")
        assert settings.has_type("S.Color")

    def test_inherited_fields_come_first(self, settings):
        names = [f.name for f in settings.fields_for_type("Shop.SpecialProduct")]
        assert names[0] == "ID"
        assert names[-1] == "Discount"
        assert [f.name for f in settings.entity_parser_for_type("Shop.SpecialProduct").keys()] == ["ID"]

    def test_require_type(self, settings):
        assert settings.require_type("Edm.String") == "Edm.String"
        assert settings.require_type("Shop.Category") == "Shop.Category"
        with pytest.raises(ConfigurationError, match="Shop.Nope"):
            settings.require_type("Shop.Nope")

    def test_wrong_parser_kind_raises(self, settings):
        with pytest.raises(ConfigurationError):
            settings.entity_parser_for_type("Shop.Color")
        with pytest.raises(ConfigurationError):
            settings.enum_parser_for_type("Shop.Product")

    def test_entity_sets(self, settings):
        assert settings.type_for_entity_set("Products") == "Shop.Product"
        assert settings.type_for_entity_set("Unknown") is None
        assert "OrderLines" in list(settings.entity_sets())

    def test_callables(self, settings):
        assert settings.callable_for_name("MostExpensive").return_type == "Shop.Product"
        assert settings.callable_for_name("Shop.Discount").action is True
        assert settings.callable_for_name("Nope") is None

    def test_unknown_base_type_raises(self, api_config):
        api_config["schemas"][0]["entities"].append({"name": "Broken", "base": "Shop.Missing"})
        with pytest.raises(ConfigurationError, match="Shop.Missing"):
            ODataSettings(api_config)

    def test_model_registry(self, settings):
        class Product(ODataModel):
            entity_type = "Shop.Product"

        settings.register_model("Shop.Product", Product)
        assert settings.model_for_type("Shop.Product") is Product
        assert settings.model_for_type("Shop.Category") is None
        assert settings.collection_for_type("Shop.Product") is None
        with pytest.raises(ConfigurationError):
            settings.register_model("Shop.Nope", Product)


class TestEntityParser:
    """Tests for EntityParser key resolution and payload conversion."""

    def test_single_key(self, settings):
        parser = settings.entity_parser_for_type("Shop.Product")
        assert isinstance(parser, EntityParser)
        assert parser.resolve_key({"ID": 5, "Name": "Milk"}) == 5
        assert parser.resolve_key({"Name": "Milk"}) is None

    def test_composite_key(self, settings):
        parser = settings.entity_parser_for_type("Shop.OrderLine")
        assert parser.resolve_key({"OrderID": 1, "Line": "A", "Quantity": 3}) == {"OrderID": 1, "Line": "A"}
        assert parser.resolve_key({"OrderID": 1}) is None

    def test_serialize_skips_navigation(self, settings):
        parser = settings.entity_parser_for_type("Shop.Product")
        body = parser.serialize({
            "Released": datetime(2024, 1, 31, 10, 0, tzinfo=timezone.utc),
            "Color": 5,
            "Category": {"ID": 1},
        })
        assert body == {"Released": "2024-01-31T10:00:00Z", "Color": "Red,Blue", "Category": {"ID": 1}}


class TestODataMetadata:
    """Tests for ODataMetadata."""

    def test_strip_ns(self):
        assert _strip_ns("{http://example.com}Tag") == "Tag"
        assert _strip_ns("Tag") == "Tag"

    def test_parse_v4(self, v4_metadata_xml):
        meta = ODataMetadata.parse(v4_metadata_xml)
        assert meta.entity_sets() == ["Categories", "Featured", "Products"]
        assert meta.properties("Products") == ["ID", "Name", "Color", "Origin", "Tags"]

        schema = meta.schemas[0]
        assert schema.namespace == "Shop"
        assert schema.alias == "S"
        product = next(e for e in schema.entities if e.name == "Product")
        category = next(f for f in product.fields if f.name == "Category")
        assert category.navigation and not category.collection
        tags = next(f for f in product.fields if f.name == "Tags")
        assert tags.type == "Edm.String" and tags.collection
        assert next(f for f in product.fields if f.name == "ID").key

    def test_parse_v4_enums_and_callables(self, v4_metadata_xml):
        schema = ODataMetadata.parse(v4_metadata_xml).schemas[0]
        enums = {e.name: e for e in schema.enums}
        assert enums["Color"].flags
        assert enums["Size"].members == {"Small": 0, "Large": 1}

        callables = {c.name: c for c in schema.callables}
        assert callables["MostExpensive"].return_type == "Shop.Product"
        assert callables["Discount"].action and callables["Discount"].bound
        assert callables["GetMostExpensive"].return_type == "Shop.Product"

    def test_parse_v2_associations(self, v2_metadata_xml):
        meta = ODataMetadata.parse(v2_metadata_xml)
        assert meta.entity_sets() == ["TestEntities", "TestItems"]
        entity = next(e for e in meta.schemas[0].entities if e.name == "TestEntity")
        items = next(f for f in entity.fields if f.name == "Items")
        assert items.type == "TestService.TestItem"
        assert items.collection and items.navigation

    def test_parse_v2_function_import(self, v2_metadata_xml):
        callables = {c.name: c for c in ODataMetadata.parse(v2_metadata_xml).schemas[0].callables}
        assert callables["Release"].action is True
        assert [p.name for p in callables["Release"].parameters] == ["ID"]

    def test_get_properties(self, v2_metadata_xml):
        props = ODataMetadata.parse(v2_metadata_xml).properties("TestEntities")
        assert props == ["ID", "Name", "Status", "CreatedAt"]

    def test_validate_select(self, v2_metadata_xml):
        meta = ODataMetadata.parse(v2_metadata_xml)
        valid, unknown = meta.validate_select("TestEntities", ["ID", "Name", "InvalidField"])
        assert valid == ["ID", "Name"]
        assert unknown == ["InvalidField"]

    def test_get_entity_set_info(self, v2_metadata_xml):
        info = ODataMetadata.parse(v2_metadata_xml).get_entity_set_info("TestEntities")
        assert isinstance(info, EntitySetInfo)
        assert info.entity_type == "TestService.TestEntity"
        assert ODataMetadata.parse(v2_metadata_xml).get_entity_set_info("Nope") is None

    def test_settings_from_metadata(self, v4_metadata_xml):
        settings = ODataSettings.from_metadata(v4_metadata_xml, "https://host/odata")
        assert settings.service_root_url == "https://host/odata/"
        assert settings.type_for_entity_set("Featured") == "Shop.Product"
        assert settings.entity_parser_for_type("Shop.Product").field("Origin").complex
        assert settings.enum_parser_for_type("S.Color").flags
