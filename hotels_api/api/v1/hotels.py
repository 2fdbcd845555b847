"""Hotels REST controller — ``/v1/hotels``.

The router is built with the sanitization hooks' route class, so request
bodies are sanitized before a handler runs and responses before they are
serialized.

Annotations in this module are evaluated eagerly: FastAPI reads them from
the wrapped handlers' signatures.
"""

import logging

from fastapi import APIRouter, Response, status

from hotels_api.models.schemas import Hotel, HotelInput
from hotels_api.sanitization.hooks import PayloadSanitizationHooks
from hotels_api.services.hotel_store import HotelStore

logger = logging.getLogger(__name__)


class HotelsController:
    def __init__(self, store: HotelStore) -> None:
        self.store = store

    def get_hotels(self) -> list[Hotel]:
        return self.store.list_all()

    def get_hotel(self, hotel_id: int) -> Hotel:
        return self.store.get(hotel_id)

    def create_hotel(self, hotel: HotelInput) -> Hotel:
        return self.store.create(hotel)

    def update_hotel(self, hotel_id: int, hotel: HotelInput) -> Hotel:
        return self.store.update(hotel_id, hotel)

    def delete_hotel(self, hotel_id: int) -> Response:
        self.store.delete(hotel_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)


def create_router(controller: HotelsController, hooks: PayloadSanitizationHooks) -> APIRouter:
    """Register *controller*'s handlers on a sanitizing router."""
    router = APIRouter(prefix="/v1/hotels", tags=["hotels"], route_class=hooks.route_class)
    router.add_api_route("", controller.get_hotels, methods=["GET"], response_model=list[Hotel])
    router.add_api_route(
        "",
        controller.create_hotel,
        methods=["POST"],
        response_model=Hotel,
        status_code=status.HTTP_201_CREATED,
    )
    router.add_api_route("/{hotel_id}", controller.get_hotel, methods=["GET"], response_model=Hotel)
    router.add_api_route("/{hotel_id}", controller.update_hotel, methods=["PUT"], response_model=Hotel)
    router.add_api_route(
        "/{hotel_id}",
        controller.delete_hotel,
        methods=["DELETE"],
        status_code=status.HTTP_204_NO_CONTENT,
        response_class=Response,
    )
    logger.debug("Registered %d hotel routes", len(router.routes))
    return router
