"""
Tests for odata_client.models.collection module.
"""

import asyncio

import pytest

from odata_client.core.errors import OperationNotSupportedError
from odata_client.models.collection import ODataCollection, PagerState
from odata_client.models.model import ODataModel
from odata_client.resources.responses import ODataEntitiesMeta


ROOT = "https://test.example.com/odata/"


def page(ids, count=None, next_link=None):
    payload = {"value": [{"ID": i, "Name": f"P{i}"} for i in ids]}
    if count is not None:
        payload["@odata.count"] = count
    if next_link is not None:
        payload["@odata.nextLink"] = next_link
    return payload


class TestPagerState:
    """Tests for PagerState."""

    def test_pages_from_records_and_size(self):
        state = PagerState(records=25, size=10)
        state.recompute()
        assert state.pages == 3

    def test_unknown_size_has_no_pages(self):
        state = PagerState(records=25)
        state.recompute()
        assert state.pages is None

    def test_clamp(self):
        state = PagerState(records=25, size=10, page=5)
        state.recompute()
        assert state.page == 3
        assert state.clamp(0) == 1
        assert state.clamp(2) == 2

    def test_empty_result_keeps_first_page(self):
        state = PagerState(records=0, size=10, page=2)
        state.recompute()
        assert state.pages == 0
        assert state.page == 1


class TestAssign:
    """Tests for ODataCollection.assign."""

    def test_items_are_keyed_models(self, client):
        products = client.entity_set("Products").as_collection(page([1, 2, 3]))
        assert len(products) == 3
        assert all(isinstance(p, ODataModel) for p in products)
        assert products[1].resource.path_and_params()[0] == "Products(2)"
        assert products.to_entities()[0] == {"ID": 1, "Name": "P1"}

    def test_state_from_count_and_items(self, client):
        products = client.entity_set("Products").as_collection(page(range(1, 11), count=25))
        assert products.state == PagerState(records=25, size=10, page=1, pages=3)

    def test_size_from_next_link(self, client):
        products = client.entity_set("Products").as_collection(
            page([1, 2, 3], count=25, next_link=ROOT + "Products?$skip=3")
        )
        assert products.state.size == 3
        assert products.state.pages == 9

    def test_without_count_there_are_no_pages(self, client):
        products = client.entity_set("Products").as_collection(page([1, 2]))
        assert products.state.records is None
        assert products.state.pages is None

    def test_explicit_size_wins(self, client):
        products = client.entity_set("Products").as_collection()
        products.set_page_size(10)
        products.assign([{"ID": 1}], ODataEntitiesMeta(count=25))
        assert products.state.size == 10
        assert products.state.pages == 3

    def test_v2_payload(self, client, sample_odata_response):
        products = client.entity_set("Products").as_collection(sample_odata_response)
        assert [p["ID"] for p in products] == [1, 2]
        assert products[0].meta.etag == 'W/"a"'
        assert products.state.records == 2

    def test_complex_collection_items_are_not_keyed(self, client):
        addresses = client.entity_set("Products").entity(5).property("Origin")
        items = ODataCollection([{"Street": "a"}], resource=addresses)
        assert items[0].resource.path_and_params()[0] == "Products(5)/Origin"

    def test_unattached_collection(self):
        items = ODataCollection([{"ID": 1}])
        assert items[0]["ID"] == 1
        with pytest.raises(OperationNotSupportedError):
            asyncio.run(items.fetch())


class TestPaging:
    """Page navigation re-issues the query with top/skip."""

    @pytest.fixture
    def products(self, client):
        return client.entity_set("Products").as_collection(page(range(1, 11), count=25))

    def test_page_size_then_get_page_clamps(self, products, mock_session, make_response):
        products.set_page_size(10)
        assert products.state.pages == 3
        mock_session.request.return_value = make_response(page(range(21, 26), count=25))

        asyncio.run(products.get_page(5))

        call = mock_session.request.call_args
        assert call.args == ("GET", ROOT + "Products")
        assert call.kwargs["params"] == {"$top": "10", "$skip": "20", "$count": "true"}
        assert products.state.page == 3
        assert [p["ID"] for p in products] == [21, 22, 23, 24, 25]

    def test_last_page(self, products, mock_session, make_response):
        products.set_page_size(4)
        mock_session.request.return_value = make_response(page([25], count=25))

        asyncio.run(products.get_last_page())

        assert products.state.pages == 7
        assert mock_session.request.call_args.kwargs["params"]["$skip"] == "24"
        assert products.state.page == 7

    def test_next_and_previous(self, products, mock_session, make_response):
        mock_session.request.return_value = make_response(page(range(11, 21), count=25))
        asyncio.run(products.get_next_page())
        assert products.state.page == 2
        assert mock_session.request.call_args.kwargs["params"]["$skip"] == "10"

        asyncio.run(products.get_previous_page())
        asyncio.run(products.get_previous_page())
        assert products.state.page == 1
        assert mock_session.request.call_args.kwargs["params"]["$skip"] == "0"

    def test_server_page_size_is_stable_across_next_links(self, client, mock_session, make_response):
        products = client.entity_set("Products").as_collection(
            page(range(1, 11), count=25, next_link=ROOT + "Products?$skip=10")
        )
        assert products.state.size == 10

        mock_session.request.return_value = make_response(
            page(range(11, 21), count=25, next_link=ROOT + "Products?$skip=20")
        )
        asyncio.run(products.get_next_page())
        assert mock_session.request.call_args.kwargs["params"]["$skip"] == "10"
        assert products.state == PagerState(records=25, size=10, page=2, pages=3)

        mock_session.request.return_value = make_response(page(range(21, 26), count=25))
        asyncio.run(products.get_next_page())
        assert mock_session.request.call_args.kwargs["params"] == {"$top": "10", "$skip": "20", "$count": "true"}
        assert products.state == PagerState(records=25, size=10, page=3, pages=3)

    def test_first_page(self, products, mock_session, make_response):
        mock_session.request.return_value = make_response(page(range(1, 11), count=25))
        asyncio.run(products.get_first_page())
        assert mock_session.request.call_args.kwargs["params"] == {"$top": "10", "$skip": "0", "$count": "true"}

    def test_shrinking_page_count_clamps(self, products):
        products.state.page = 3
        products.set_page_size(25)
        assert products.state.pages == 1
        assert products.state.page == 1

    def test_no_size_fetches_unpaginated(self, client, mock_session, make_response):
        products = client.entity_set("Products").filter({"Name": "Milk"}).as_collection()
        mock_session.request.return_value = make_response(page([1, 2, 3], count=3))

        asyncio.run(products.get_page(4))

        assert mock_session.request.call_args.kwargs["params"] == {
            "$filter": "Name eq 'Milk'",
            "$count": "true",
        }
        assert products.state == PagerState(records=3, size=3, page=1, pages=1)

    def test_fetch_keeps_collection_resource_untouched(self, products, mock_session, make_response):
        products.set_page_size(10)
        mock_session.request.return_value = make_response(page(range(1, 11), count=25))
        asyncio.run(products.get_page(2))
        assert products.resource.path_and_params() == ("Products", {})


class TestMembership:
    """add/remove through $ref on collection-valued navigation properties."""

    @pytest.fixture
    def members(self, client):
        return client.entity_set("Categories").entity(2).navigation_property("Products").as_collection([])

    def test_add(self, members, client, mock_session, make_response):
        mock_session.request.return_value = make_response(None, status=204)
        product = client.entity_set("Products").entity(5).as_model({"ID": 5})

        asyncio.run(members.add(product))

        call = mock_session.request.call_args
        assert call.args == ("POST", ROOT + "Categories(2)/Products/$ref")
        assert call.kwargs["body"] == {"@odata.id": ROOT + "Products(5)"}
        assert list(members) == [product]

    def test_remove(self, members, client, mock_session, make_response):
        mock_session.request.return_value = make_response(None, status=204)
        product = client.entity_set("Products").as_model({"ID": 5})
        members.assign([{"ID": 5}, {"ID": 6}])
        asyncio.run(members.add(product))

        asyncio.run(members.remove(product))

        call = mock_session.request.call_args
        assert call.args == ("DELETE", ROOT + "Categories(2)/Products/$ref")
        assert call.kwargs["params"] == {"$id": ROOT + "Products(5)"}
        assert [m["ID"] for m in members] == [5, 6]

    def test_entity_set_members_are_not_references(self, client):
        products = client.entity_set("Products").as_collection([])
        model = client.entity_set("Products").as_model({"ID": 5})
        with pytest.raises(OperationNotSupportedError):
            asyncio.run(products.add(model))


class TestQueryForwarders:
    """Query option forwarders."""

    def test_forwarders_mutate_the_resource(self, client):
        products = client.entity_set("Products").as_collection()
        assert products.select(["Name"]).filter({"ID": 1}).order_by("Name") is products
        assert products.resource.path_and_params()[1] == {
            "$select": "Name",
            "$filter": "ID eq 1",
            "$orderby": "Name",
        }
        assert products.select() == ["Name"]
