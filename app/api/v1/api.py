from fastapi import APIRouter
from app.api.v1.endpoints import session, members, recipes, fortune, admin

api_router = APIRouter()

api_router.include_router(session.router, prefix="/session", tags=["session"])
api_router.include_router(members.router, prefix="/members", tags=["members"])
api_router.include_router(recipes.router, prefix="/recipes", tags=["recipes"])
api_router.include_router(fortune.router, prefix="/fortune", tags=["fortune"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
