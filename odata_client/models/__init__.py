"""
odata_client.models - Entity models and collections
===================================================

"""

from odata_client.models.fields import Attribute, Relation
from odata_client.models.model import ODataModel
from odata_client.models.collection import ODataCollection, PagerState

__all__ = [
    "Attribute",
    "Relation",
    "ODataModel",
    "ODataCollection",
    "PagerState",
]
