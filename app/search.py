"""Geo search index: propagation of pets and nearby queries.

The relational database stays authoritative. The index (Algolia) is a
derived, eventually consistent copy of every pet, used only for public
proximity search. Writes to it happen after the database commit and
their failures are logged, never reported to the caller.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol

from algoliasearch.search.client import SearchClientSync
from algoliasearch.search.config import SearchConfig
from fastapi import Depends

from .core import Settings, get_settings
from .errors import Internal, InvalidArgument
from .models import Pet, PetStatus

logger = logging.getLogger(__name__)

LOST_FILTER = f"status:{PetStatus.LOST.value}"


@dataclass(frozen=True)
class GeoQuery:
    """Point and radius of a proximity query."""

    lat: float
    lng: float
    radius_meters: float


class SearchIndex(Protocol):
    configured: bool

    def upsert(self, object_id: str, document: dict[str, Any]) -> None: ...

    def delete(self, object_id: str) -> None: ...

    def query(self, filters: str, geo: GeoQuery) -> list[dict[str, Any]]: ...


class DisabledIndex:
    """Stand-in used when no index credentials are configured.

    Writes succeed without doing anything and queries find nothing.
    """

    configured = False

    def upsert(self, object_id, document):
        return None

    def delete(self, object_id):
        return None

    def query(self, filters, geo):
        return []


def around_radius(radius_meters: float) -> int:
    """Whole meters sent to the index, which rejects radii below 1."""
    return max(1, math.ceil(radius_meters))


class AlgoliaIndex:
    """Algolia backed index of pets."""

    configured = True

    def __init__(
        self,
        app_id: str,
        api_key: str,
        index_name: str,
        timeout_seconds: float,
        client=None,
    ):
        self.index_name = index_name
        if client is not None:
            self._client = client
            return
        config = SearchConfig(app_id, api_key)
        timeout_ms = int(timeout_seconds * 1000)
        config.connect_timeout = timeout_ms
        config.read_timeout = timeout_ms
        config.write_timeout = timeout_ms
        self._client = SearchClientSync.create_with_config(config=config)

    def upsert(self, object_id, document):
        # save_object replaces the whole record
        self._client.save_object(
            index_name=self.index_name, body={**document, "objectID": object_id}
        )

    def delete(self, object_id):
        self._client.delete_object(index_name=self.index_name, object_id=object_id)

    def query(self, filters, geo):
        response = self._client.search_single_index(
            index_name=self.index_name,
            search_params={
                "query": "",
                "filters": filters,
                "aroundLatLng": f"{geo.lat}, {geo.lng}",
                "aroundRadius": around_radius(geo.radius_meters),
            },
        )
        return response.to_dict().get("hits", [])


def build_search_index(settings: Settings) -> SearchIndex:
    if settings.search_configured:
        return AlgoliaIndex(
            settings.ALGOLIA_APP_ID,
            settings.ALGOLIA_ADMIN_KEY,
            settings.ALGOLIA_INDEX,
            settings.SEARCH_TIMEOUT_SECONDS,
        )
    logger.info("Algolia credentials missing, public search disabled")
    return DisabledIndex()


@lru_cache()
def get_search_index() -> SearchIndex:
    """Dependency returning the process wide index client."""
    return build_search_index(get_settings())


def build_index_document(pet: Pet) -> dict[str, Any]:
    """
    Project a pet into the document stored in the index.

    The geo point is only present when both coordinates are set.

    Args:
        pet (Pet): Persisted pet.

    Returns:
        dict: Complete index document, keyed by ``objectID``.
    """
    document = {
        "objectID": str(pet.id),
        "name": pet.name,
        "status": pet.status,
        "location": pet.location,
        "image_url": pet.image_url,
    }
    if pet.lat is not None and pet.lng is not None:
        document["_geoloc"] = {"lat": float(pet.lat), "lng": float(pet.lng)}
    return document


_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="index-sync")


class IndexSynchronizer:
    """Pushes pet state to the index after each committed mutation.

    Every call is bounded by ``timeout`` seconds. Errors and timeouts
    are logged and reported as ``False``; they are never raised.
    """

    def __init__(self, index: SearchIndex, timeout: float, executor=None):
        self.index = index
        self.timeout = timeout
        self.executor = executor or _executor

    def _run(self, action: str, object_id: str, fn, *args) -> bool:
        if not self.index.configured:
            return True
        future = self.executor.submit(fn, *args)
        try:
            future.result(timeout=self.timeout)
        except FutureTimeout:
            # a queued call must not overwrite newer state later
            future.cancel()
            logger.warning(
                "index %s of pet %s timed out after %ss, index is stale",
                action,
                object_id,
                self.timeout,
            )
            return False
        except Exception:
            logger.exception("index %s of pet %s failed, index is stale", action, object_id)
            return False
        return True

    def propagate(self, pet: Pet) -> bool:
        document = build_index_document(pet)
        object_id = document.pop("objectID")
        return self._run("upsert", object_id, self.index.upsert, object_id, document)

    def remove(self, pet_id: int) -> bool:
        object_id = str(pet_id)
        return self._run("delete", object_id, self.index.delete, object_id)


def get_index_synchronizer(
    index: SearchIndex = Depends(get_search_index),
) -> IndexSynchronizer:
    return IndexSynchronizer(index, timeout=get_settings().SEARCH_TIMEOUT_SECONDS)


def _finite(value, code: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidArgument(code)
    if not math.isfinite(number):
        raise InvalidArgument(code)
    return number


def _coordinate(value, bound: float) -> float:
    number = _finite(value, "invalid_lat_lng")
    if not -bound <= number <= bound:
        raise InvalidArgument("invalid_lat_lng")
    return number


class ProximitySearch:
    """Public nearby search over the index, never the database."""

    def __init__(self, index: SearchIndex):
        self.index = index

    def search_nearby(self, lat, lng, radius_meters) -> list[dict[str, Any]]:
        """
        Find lost pets within ``radius_meters`` of a point.

        Args:
            lat: Latitude, anything ``float()`` accepts.
            lng: Longitude, anything ``float()`` accepts.
            radius_meters: Search radius in meters.

        Raises:
            InvalidArgument: If a coordinate is not a number within
                range or the radius is not a positive finite number.
                The index is not contacted.
            Internal: If a configured index fails to answer.

        Returns:
            list[dict]: Hits in index order.
        """
        geo = GeoQuery(
            lat=_coordinate(lat, 90),
            lng=_coordinate(lng, 180),
            radius_meters=_finite(radius_meters, "invalid_radius"),
        )
        if geo.radius_meters <= 0:
            raise InvalidArgument("invalid_radius")
        if not self.index.configured:
            return []
        try:
            hits = self.index.query(LOST_FILTER, geo)
        except Exception:
            logger.exception("nearby search failed")
            raise Internal("search_unavailable")
        return [hit for hit in hits if hit.get("status") == PetStatus.LOST.value]


def get_proximity_search(
    index: SearchIndex = Depends(get_search_index),
) -> ProximitySearch:
    return ProximitySearch(index)
