"""FastAPI adapter: placeholder item endpoints wired to the shipper."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from lokiship.core.models import Level
from lokiship.core.ports import ShipperPort


def get_shipper(request: Request) -> ShipperPort:
    """Dependency returning the shipper stored on ``app.state``."""
    return request.app.state.shipper


Shipper = Annotated[ShipperPort, Depends(get_shipper)]


def create_item_router() -> APIRouter:
    """Create a router with the /item CRUD endpoints.

    The endpoints store nothing; each ships one line describing the action
    and returns a JSON message.

    Returns:
        APIRouter with POST /item and GET/PUT/DELETE /item/{item_id}.
    """
    router = APIRouter()

    @router.post("/item", status_code=status.HTTP_201_CREATED)
    async def create_item(shipper: Shipper) -> dict[str, str]:
        shipper.enqueue(Level.INFO, "Creating new item")
        return {"message": "Item created successfully"}

    @router.get("/item/{item_id}")
    async def get_item(item_id: str, shipper: Shipper) -> dict[str, str]:
        shipper.enqueue(Level.INFO, f"Getting item with ID: {item_id}")
        return {"message": f"Get item with ID: {item_id}"}

    @router.put("/item/{item_id}")
    async def update_item(item_id: str, shipper: Shipper) -> dict[str, str]:
        shipper.enqueue(Level.INFO, f"Updating item with ID: {item_id}")
        return {"message": f"Item with ID {item_id} updated successfully"}

    @router.delete("/item/{item_id}")
    async def delete_item(item_id: str, shipper: Shipper) -> dict[str, str]:
        shipper.enqueue(Level.INFO, f"Deleting item with ID: {item_id}")
        return {"message": f"Item with ID {item_id} deleted successfully"}

    return router
