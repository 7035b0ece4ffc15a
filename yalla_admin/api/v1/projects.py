"""Project endpoints"""

from fastapi import APIRouter

from yalla_admin.core.dependencies import (
    CompanyAdmin,
    CompanyUser,
    DBSession,
    ensure_project_access,
    scoped_project_id,
)
from yalla_admin.schemas.common import MessageResponse
from yalla_admin.schemas.organization import (
    ProjectCreate,
    ProjectResponse,
    ProjectStats,
    ProjectUpdate,
    ServiceTypeInfo,
)
from yalla_admin.services.project_service import project_service

router = APIRouter()


@router.get("", response_model=list[ProjectResponse])
async def list_projects(user: CompanyUser, db: DBSession):
    """
    Projects of the caller's company

    Users bound to a non-headquarters project see only that project.
    """
    projects = await project_service.list_projects(db, user.company_id)
    pinned = scoped_project_id(user)
    if pinned:
        projects = [project for project in projects if project.id == pinned]
    return projects


@router.get("/service-types", response_model=list[ServiceTypeInfo])
async def get_service_types(user: CompanyUser):
    return project_service.get_service_types()


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: str, user: CompanyUser, db: DBSession):
    return await project_service.get_project(db, user.company_id, ensure_project_access(user, project_id))


@router.post("", response_model=ProjectResponse, status_code=201)
async def create_project(data: ProjectCreate, user: CompanyAdmin, db: DBSession):
    return await project_service.create_project(db, user.company_id, data)


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(project_id: str, data: ProjectUpdate, user: CompanyAdmin, db: DBSession):
    """Update a project; the address cannot change once set"""
    return await project_service.update_project(db, user.company_id, project_id, data)


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(project_id: str, user: CompanyAdmin, db: DBSession):
    await project_service.delete_project(db, user.company_id, project_id)
    return MessageResponse(message="Проект удалён")


@router.get("/{project_id}/stats", response_model=ProjectStats)
async def get_project_stats(project_id: str, user: CompanyUser, db: DBSession):
    return await project_service.get_stats(db, user.company_id, ensure_project_access(user, project_id))
