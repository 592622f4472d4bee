"""
Example: Basic OData usage with odata_client
============================================

This example shows resource building, typed models and paging against the
public TripPin reference service.
"""

import asyncio

from odata_client import (
    Attribute,
    ConnectionContext,
    ODataAuth,
    ODataClient,
    ODataConfig,
    ODataModel,
    ODataSession,
    ODataSettings,
    Relation,
)

SERVICE_ROOT = "https://services.odata.org/V4/TripPinServiceRW/"


class Person(ODataModel):
    entity_type = "Microsoft.OData.SampleService.Models.TripPin.Person"

    user_name = Attribute("UserName")
    first_name = Attribute("FirstName")
    last_name = Attribute("LastName")
    photo = Relation("Photo")


async def example_basic_query(client: ODataClient):
    """Select, filter and page through an entity set."""
    people = (
        client.entity_set("People")
        .select(["UserName", "FirstName", "LastName"])
        .filter({"LastName": {"startswith": "W"}})
        .order_by([("UserName", "asc")])
    )
    print("Request:", people.path_and_params())

    page = await people.fetch_collection()
    print(f"{page.state.records} people, page {page.state.page}/{page.state.pages}")
    for person in page:
        print(" -", person["UserName"], person["FirstName"], person["LastName"])


async def example_models(client: ODataClient):
    """Typed models with static field descriptors."""
    client.settings.register_model(Person.entity_type, Person)

    person = await client.entity_set("People").entity("russellwhyte").fetch_model()
    print(f"{person.first_name} {person.last_name}")

    friends = await person.navigation_property("Friends").fetch_collection()
    print("Friends:", [f.user_name for f in friends])


async def example_paging(client: ODataClient):
    """Explicit page size with clamped page navigation."""
    airports = client.entity_set("Airports").as_collection()
    airports.set_page_size(3)
    await airports.get_first_page()
    while airports.state.pages and airports.state.page < airports.state.pages:
        print(f"page {airports.state.page}:", [a["IcaoCode"] for a in airports])
        await airports.get_next_page()


def example_connection_context():
    """Using ConnectionContext; schemas are read from $metadata."""
    # Reads ODATA_SERVICE_ROOT, ODATA_USER, ODATA_PASS (or ODATA_BEARER_TOKEN)
    with ConnectionContext(SERVICE_ROOT) as conn:
        client = conn.get_client()
        asyncio.run(example_basic_query(client))
        asyncio.run(example_models(client))
        asyncio.run(example_paging(client))


def example_explicit_session():
    """Building the session and settings by hand."""
    cfg = ODataConfig(SERVICE_ROOT, auth=ODataAuth("basic", ("USER", "PASSWORD")))
    with ODataSession(cfg) as sess:
        xml_text = sess.request("GET", sess.url("$metadata"), response_type="text")
        client = ODataClient(sess, ODataSettings.from_metadata(xml_text, SERVICE_ROOT))
        asyncio.run(example_basic_query(client))


if __name__ == "__main__":
    # Uncomment the example you want to run
    # example_connection_context()
    # example_explicit_session()

    print("Uncomment an example to run it against the TripPin service.")
