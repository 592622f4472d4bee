"""
Pytest configuration and shared fixtures.
"""

import json

import pytest
from unittest.mock import Mock

from odata_client.client import ODataClient
from odata_client.config.settings import ODataSettings


SERVICE_ROOT = "https://test.example.com/odata/"


def shop_config():
    """Hand-written configuration of the "Shop" test service."""
    return {
        "service_root_url": SERVICE_ROOT,
        "schemas": [
            {
                "namespace": "Shop",
                "alias": "S",
                "entities": [
                    {
                        "name": "Product",
                        "fields": [
                            {"name": "ID", "type": "Edm.Int32", "key": True, "nullable": False},
                            {"name": "Name", "type": "Edm.String"},
                            {"name": "Price", "type": "Edm.Decimal"},
                            {"name": "Released", "type": "Edm.DateTimeOffset"},
                            {"name": "Color", "type": "Shop.Color"},
                            {"name": "Origin", "type": "Shop.Address"},
                            {"name": "Tags", "type": "Edm.String", "collection": True},
                            {"name": "Category", "type": "Shop.Category", "navigation": True},
                            {"name": "Supplier", "type": "Shop.Supplier", "navigation": True},
                            {"name": "Related", "type": "Shop.Product", "navigation": True, "collection": True},
                        ],
                    },
                    {
                        "name": "SpecialProduct",
                        "base": "S.Product",
                        "fields": [{"name": "Discount", "type": "Edm.Int32"}],
                    },
                    {
                        "name": "Category",
                        "fields": [
                            {"name": "ID", "type": "Edm.Int32", "key": True, "nullable": False},
                            {"name": "Name", "type": "Edm.String"},
                            {"name": "Products", "type": "Shop.Product", "navigation": True, "collection": True},
                        ],
                    },
                    {
                        "name": "Supplier",
                        "fields": [
                            {"name": "ID", "type": "Edm.Int32", "key": True, "nullable": False},
                            {"name": "Name", "type": "Edm.String"},
                        ],
                    },
                    {
                        "name": "OrderLine",
                        "fields": [
                            {"name": "OrderID", "type": "Edm.Int32", "key": True},
                            {"name": "Line", "type": "Edm.String", "key": True},
                            {"name": "Quantity", "type": "Edm.Int32"},
                        ],
                    },
                    {
                        "name": "Address",
                        "complex": True,
                        "fields": [
                            {"name": "Street", "type": "Edm.String"},
                            {"name": "City", "type": "Edm.String"},
                        ],
                    },
                ],
                "enums": [
                    {"name": "Color", "members": {"Red": 1, "Green": 2, "Blue": 4}, "flags": True},
                ],
                "callables": [
                    {"name": "MostExpensive", "return_type": "Shop.Product"},
                    {"name": "TopProducts", "bound": True, "return_type": "Shop.Product", "return_collection": True},
                    {
                        "name": "Discount",
                        "action": True,
                        "bound": True,
                        "parameters": [{"name": "Percent", "type": "Edm.Int32"}],
                    },
                ],
                "entity_sets": {
                    "Products": "Shop.Product",
                    "Categories": "Shop.Category",
                    "Suppliers": "Shop.Supplier",
                    "OrderLines": "Shop.OrderLine",
                    "Featured": "Shop.Product",
                },
            }
        ],
    }


@pytest.fixture
def api_config():
    """Plain dict configuration of the test service."""
    return shop_config()


@pytest.fixture
def settings(api_config):
    """ODataSettings built from the test configuration."""
    return ODataSettings(api_config)


@pytest.fixture
def mock_session():
    """Create a mock ODataSession."""
    session = Mock()
    session.base = SERVICE_ROOT
    session.timeout = 60.0
    session.verify = True
    session.request = Mock(return_value=None)
    return session


@pytest.fixture
def client(mock_session, settings):
    """ODataClient over the mock session."""
    return ODataClient(mock_session, settings)


@pytest.fixture
def make_response():
    """Factory for mock requests.Response objects."""

    def _make(payload=None, *, status=200, headers=None, text=None):
        response = Mock()
        response.status_code = status
        response.headers = dict(headers or {})
        if payload is not None:
            response.headers.setdefault("Content-Type", "application/json")
            response.text = json.dumps(payload)
            response.content = response.text.encode()
            response.json = Mock(return_value=payload)
        elif text is not None:
            response.headers.setdefault("Content-Type", "text/plain")
            response.text = text
            response.content = text.encode()
            response.json = Mock(side_effect=ValueError("not json"))
        else:
            response.text = ""
            response.content = b""
            response.json = Mock(side_effect=ValueError("empty body"))
        return response

    return _make


@pytest.fixture
def product_payload():
    """Sample OData v4 entity payload of a Shop.Product."""
    return {
        "@odata.context": SERVICE_ROOT + "$metadata#Products/$entity",
        "@odata.etag": 'W/"1"',
        "ID": 5,
        "Name": "Milk",
        "Price": 1.5,
        "Released": "2024-01-31T10:00:00Z",
        "Color": "Red,Blue",
        "Origin": {"Street": "Main St 1", "City": "Springfield"},
        "Tags": ["dairy", "fresh"],
        "Category": {"ID": 2, "Name": "Dairy"},
        "Extra": "kept",
    }


@pytest.fixture
def sample_odata_response():
    """Sample OData v2 collection response."""
    return {
        "d": {
            "results": [
                {"__metadata": {"etag": 'W/"a"'}, "ID": 1, "Name": "Test 1"},
                {"__metadata": {"etag": 'W/"b"'}, "ID": 2, "Name": "Test 2"},
            ],
            "__count": "2",
            "__next": None,
        }
    }


@pytest.fixture
def v4_metadata_xml():
    """Sample OData v4 $metadata document."""
    return """<edmx:Edmx Version="4.0" xmlns:edmx="http://docs.oasis-open.org/odata/ns/edmx">
  <edmx:DataServices>
    <Schema Namespace="Shop" Alias="S" xmlns="http://docs.oasis-open.org/odata/ns/edm">
      <EnumType Name="Color" IsFlags="true">
        <Member Name="Red" Value="1"/>
        <Member Name="Green" Value="2"/>
        <Member Name="Blue" Value="4"/>
      </EnumType>
      <EnumType Name="Size">
        <Member Name="Small"/>
        <Member Name="Large"/>
      </EnumType>
      <ComplexType Name="Address">
        <Property Name="Street" Type="Edm.String"/>
        <Property Name="City" Type="Edm.String"/>
      </ComplexType>
      <EntityType Name="Product">
        <Key>
          <PropertyRef Name="ID"/>
        </Key>
        <Property Name="ID" Type="Edm.Int32" Nullable="false"/>
        <Property Name="Name" Type="Edm.String"/>
        <Property Name="Color" Type="Shop.Color"/>
        <Property Name="Origin" Type="Shop.Address"/>
        <Property Name="Tags" Type="Collection(Edm.String)"/>
        <NavigationProperty Name="Category" Type="Shop.Category" Partner="Products"/>
      </EntityType>
      <EntityType Name="Category">
        <Key>
          <PropertyRef Name="ID"/>
        </Key>
        <Property Name="ID" Type="Edm.Int32" Nullable="false"/>
        <Property Name="Name" Type="Edm.String"/>
        <NavigationProperty Name="Products" Type="Collection(Shop.Product)"/>
      </EntityType>
      <Function Name="MostExpensive">
        <ReturnType Type="Shop.Product"/>
      </Function>
      <Action Name="Discount" IsBound="true">
        <Parameter Name="bindingParameter" Type="Shop.Product"/>
        <Parameter Name="Percent" Type="Edm.Int32"/>
      </Action>
      <EntityContainer Name="Container">
        <EntitySet Name="Products" EntityType="Shop.Product"/>
        <EntitySet Name="Categories" EntityType="Shop.Category"/>
        <Singleton Name="Featured" Type="Shop.Product"/>
        <FunctionImport Name="GetMostExpensive" Function="Shop.MostExpensive"/>
      </EntityContainer>
    </Schema>
  </edmx:DataServices>
</edmx:Edmx>"""


@pytest.fixture
def v2_metadata_xml():
    """Sample OData v2 $metadata document."""
    return """<edmx:Edmx Version="1.0" xmlns:edmx="http://schemas.microsoft.com/ado/2007/06/edmx">
  <edmx:DataServices m:DataServiceVersion="2.0" xmlns:m="http://schemas.microsoft.com/ado/2007/08/dataservices/metadata">
    <Schema Namespace="TestService" xmlns="http://schemas.microsoft.com/ado/2008/09/edm">
      <EntityType Name="TestEntity">
        <Key>
          <PropertyRef Name="ID"/>
        </Key>
        <Property Name="ID" Type="Edm.String" Nullable="false"/>
        <Property Name="Name" Type="Edm.String"/>
        <Property Name="Status" Type="Edm.String"/>
        <Property Name="CreatedAt" Type="Edm.DateTime"/>
        <NavigationProperty Name="Items" Relationship="TestService.Entity_Items" FromRole="Entity" ToRole="Items"/>
      </EntityType>
      <EntityType Name="TestItem">
        <Key>
          <PropertyRef Name="ItemID"/>
        </Key>
        <Property Name="ItemID" Type="Edm.String" Nullable="false"/>
      </EntityType>
      <Association Name="Entity_Items">
        <End Type="TestService.TestEntity" Multiplicity="1" Role="Entity"/>
        <End Type="TestService.TestItem" Multiplicity="*" Role="Items"/>
      </Association>
      <EntityContainer Name="TestService" m:IsDefaultEntityContainer="true">
        <EntitySet Name="TestEntities" EntityType="TestService.TestEntity"/>
        <EntitySet Name="TestItems" EntityType="TestService.TestItem"/>
        <FunctionImport Name="Release" ReturnType="TestService.TestEntity" m:HttpMethod="POST">
          <Parameter Name="ID" Type="Edm.String"/>
        </FunctionImport>
      </EntityContainer>
    </Schema>
  </edmx:DataServices>
</edmx:Edmx>"""
