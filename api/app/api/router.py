from fastapi import APIRouter

from app.api.routes import admin, applications, auth, health, jobs

health_router = APIRouter()
health_router.include_router(health.router, tags=["health"])

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])
api_router.include_router(jobs.recruiter_router, prefix="/recruiter", tags=["jobs"])
api_router.include_router(applications.router, prefix="/applications", tags=["applications"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
