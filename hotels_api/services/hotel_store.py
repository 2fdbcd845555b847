"""In-memory hotel store.

Stands in for the persistence layer.  Thread-safe: FastAPI runs sync
handlers in a worker pool, so every access holds the store lock.
"""

from __future__ import annotations

import itertools
import logging
import threading

from hotels_api.core.errors import HotelNotFoundError
from hotels_api.models.schemas import Facility, Hotel, HotelInput

logger = logging.getLogger(__name__)


class HotelStore:
    def __init__(self) -> None:
        self._hotels: dict[int, Hotel] = {}
        self._lock = threading.Lock()
        self._hotel_ids = itertools.count(1)
        self._facility_ids = itertools.count(1)

    def list_all(self) -> list[Hotel]:
        with self._lock:
            return [hotel.model_copy(deep=True) for hotel in self._hotels.values()]

    def get(self, hotel_id: int) -> Hotel:
        """Return a copy of the stored hotel.

        Raises:
            HotelNotFoundError: If *hotel_id* is unknown.
        """
        with self._lock:
            hotel = self._hotels.get(hotel_id)
            if hotel is None:
                raise HotelNotFoundError(hotel_id)
            return hotel.model_copy(deep=True)

    def create(self, data: HotelInput) -> Hotel:
        with self._lock:
            hotel = self._build(next(self._hotel_ids), data)
            self._hotels[hotel.id] = hotel
        logger.info("Created hotel %d", hotel.id)
        return hotel.model_copy(deep=True)

    def update(self, hotel_id: int, data: HotelInput) -> Hotel:
        with self._lock:
            if hotel_id not in self._hotels:
                raise HotelNotFoundError(hotel_id)
            hotel = self._build(hotel_id, data)
            self._hotels[hotel_id] = hotel
        logger.info("Updated hotel %d", hotel_id)
        return hotel.model_copy(deep=True)

    def delete(self, hotel_id: int) -> None:
        with self._lock:
            if self._hotels.pop(hotel_id, None) is None:
                raise HotelNotFoundError(hotel_id)
        logger.info("Deleted hotel %d", hotel_id)

    def _build(self, hotel_id: int, data: HotelInput) -> Hotel:
        facilities = [
            Facility(id=next(self._facility_ids), **facility.model_dump()) for facility in data.facilities
        ]
        return Hotel(id=hotel_id, **data.model_dump(exclude={"facilities"}), facilities=facilities)
