from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Response
from starlette.status import HTTP_201_CREATED, HTTP_204_NO_CONTENT, HTTP_404_NOT_FOUND

from ..schemas import ComparisonResponse, PropertyAttributesIn, RevalueResponse, SavedPropertyOut
from ..services.portfolio import PropertyNotFound, PropertyStore, compare, revalue, saved_properties, wishlist
from ..services.valuation_service import ValuationService
from ..core.security import require_api_key
from .valuation import service_dep

def saved_dep() -> PropertyStore:
    return saved_properties

def wishlist_dep() -> PropertyStore:
    return wishlist

def _lookup(store: PropertyStore, property_id: str):
    try:
        return store.get(property_id)
    except PropertyNotFound:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=f"No property {property_id!r} in {store.name}")

def build_router(store_dep: Callable[[], PropertyStore], with_comparison: bool) -> APIRouter:
    """
    Same list semantics for the saved-property list and the wishlist:
    the price is computed server-side when a record is added.
    """
    router = APIRouter(dependencies=[Depends(require_api_key)])

    @router.get("", response_model=list[SavedPropertyOut])
    def list_properties(store: PropertyStore = Depends(store_dep)):
        return [r.as_dict() for r in store.list()]

    @router.post("", response_model=SavedPropertyOut, status_code=HTTP_201_CREATED)
    def add_property(
        body: PropertyAttributesIn,
        store: PropertyStore = Depends(store_dep),
        svc: ValuationService = Depends(service_dep),
    ):
        attributes = body.to_attributes()
        result = svc.estimate(attributes)
        return store.add(attributes, result.price).as_dict()

    if with_comparison:
        # Registered before /{property_id} routes so the literal path wins
        @router.get("/comparison", response_model=ComparisonResponse)
        def comparison(store: PropertyStore = Depends(store_dep)):
            return compare(store.list())

    @router.get("/{property_id}", response_model=SavedPropertyOut)
    def get_property(property_id: str, store: PropertyStore = Depends(store_dep)):
        return _lookup(store, property_id).as_dict()

    @router.get("/{property_id}/revalue", response_model=RevalueResponse)
    def revalue_property(
        property_id: str,
        store: PropertyStore = Depends(store_dep),
        svc: ValuationService = Depends(service_dep),
    ):
        return revalue(svc.engine, _lookup(store, property_id))

    @router.delete("/{property_id}", status_code=HTTP_204_NO_CONTENT)
    def remove_property(property_id: str, store: PropertyStore = Depends(store_dep)):
        try:
            store.remove(property_id)
        except PropertyNotFound:
            raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=f"No property {property_id!r} in {store.name}")
        return Response(status_code=HTTP_204_NO_CONTENT)

    return router

properties_router = build_router(saved_dep, with_comparison=True)
wishlist_router = build_router(wishlist_dep, with_comparison=False)
