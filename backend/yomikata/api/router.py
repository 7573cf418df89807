from fastapi import APIRouter

from yomikata.api.routes.analyze import router as analyze_router
from yomikata.api.routes.root import router as root_router
from yomikata.api.routes.transliterate import router as transliterate_router

api_router = APIRouter()
api_router.include_router(root_router)
api_router.include_router(analyze_router)
api_router.include_router(transliterate_router)
