"""
Resource hub endpoints for API v1.

Browsing is public.  Adding and editing resources is admin only.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from zencare_api.app.api.v1.errors import http_error, server_error
from zencare_api.app.core.security import ROLE_ADMIN, require_roles
from zencare_api.app.schemas.resource import (
    Difficulty,
    ResourceCategory,
    ResourceCreate,
    ResourceLanguage,
    ResourceList,
    ResourceRead,
    ResourceType,
    ResourceUpdate,
)
from zencare_api.app.services.resource_service import ResourceService


router = APIRouter()


@router.get("/", response_model=ResourceList)
async def list_resources(
    type: Optional[ResourceType] = Query(None),
    language: Optional[ResourceLanguage] = Query(None),
    category: Optional[str] = Query(None, description="Category id, e.g. anxiety"),
    difficulty: Optional[Difficulty] = Query(None),
    search: Optional[str] = Query(None, description="Matched against title, description and tags"),
    limit: int = Query(50, ge=1, le=100),
) -> ResourceList:
    return await ResourceService.list_resources(
        type=type, language=language, category=category, difficulty=difficulty, search=search, limit=limit
    )


@router.get("/meta/categories", response_model=List[ResourceCategory])
async def list_categories() -> List[ResourceCategory]:
    return ResourceService.categories()


@router.get("/meta/featured", response_model=List[ResourceRead])
async def featured_resources() -> List[ResourceRead]:
    return await ResourceService.featured()


@router.get("/meta/popular", response_model=List[ResourceRead])
async def popular_resources(limit: int = Query(10, ge=1, le=100)) -> List[ResourceRead]:
    """Most viewed active resources."""
    return await ResourceService.popular(limit)


@router.get("/category/{category_id}", response_model=ResourceList)
async def resources_in_category(
    category_id: str,
    language: Optional[ResourceLanguage] = Query(None),
    type: Optional[ResourceType] = Query(None),
    limit: int = Query(20, ge=1, le=100),
) -> ResourceList:
    return await ResourceService.list_resources(type=type, language=language, category=category_id, limit=limit)


@router.get("/search/{term}", response_model=ResourceList)
async def search_resources(
    term: str,
    language: Optional[ResourceLanguage] = Query(None),
    type: Optional[ResourceType] = Query(None),
    limit: int = Query(20, ge=1, le=100),
) -> ResourceList:
    """Ranked search; title hits outrank description, tag and body hits."""
    return await ResourceService.search(term, language=language, type=type, limit=limit)


@router.get("/{resource_id}", response_model=ResourceRead)
async def get_resource(resource_id: int) -> ResourceRead:
    """Open a resource; each call counts one view."""
    try:
        return await ResourceService.get_resource(resource_id)
    except ValueError as e:
        raise http_error(e)


@router.post("/", response_model=ResourceRead, status_code=status.HTTP_201_CREATED)
async def create_resource(
    data: ResourceCreate,
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> ResourceRead:
    try:
        return await ResourceService.create(current_user["user_id"], data)
    except Exception as e:
        raise server_error("resource creation", e)


@router.put("/{resource_id}", response_model=ResourceRead)
async def update_resource(
    resource_id: int,
    update: ResourceUpdate,
    current_user: dict = Depends(require_roles(ROLE_ADMIN)),
) -> ResourceRead:
    """Edit, feature or deactivate a resource."""
    try:
        return await ResourceService.update(current_user["user_id"], resource_id, update)
    except ValueError as e:
        raise http_error(e)
