"""
API v1 Router

All org-scoped endpoints are prefixed with /orgs/{org_id}.
"""

from fastapi import APIRouter
from . import audit, members, projects, tasks, teams, work_logs
from .organizations import router_global as orgs_global_router
from .organizations import router_scoped as orgs_scoped_router

router = APIRouter()

# Organization routes (non-org-scoped: list, create, accept invite)
router.include_router(orgs_global_router)

# Organization routes (org-scoped: get, update, delete, role)
router.include_router(orgs_scoped_router, prefix="/orgs/{org_id}", tags=["Organizations"])

PROJECT = "/orgs/{org_id}/projects/{project_id}"

router.include_router(members.router, prefix="/orgs/{org_id}/members", tags=["Members"])
router.include_router(teams.router, prefix="/orgs/{org_id}/teams", tags=["Teams"])
router.include_router(projects.router, prefix="/orgs/{org_id}/projects", tags=["Projects"])
router.include_router(tasks.router, prefix=f"{PROJECT}/tasks", tags=["Tasks"])
router.include_router(tasks.org_router, prefix="/orgs/{org_id}/tasks", tags=["Tasks"])
router.include_router(work_logs.router, prefix=f"{PROJECT}/work-logs", tags=["Work Logs"])
router.include_router(audit.router, prefix=f"{PROJECT}/audit", tags=["Audit"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/orgs",
            "/orgs/{org_id}/members",
            "/orgs/{org_id}/teams",
            "/orgs/{org_id}/projects",
            "/orgs/{org_id}/tasks",
            f"{PROJECT}/tasks",
            f"{PROJECT}/work-logs",
            f"{PROJECT}/audit",
        ],
    }
