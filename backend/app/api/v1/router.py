from fastapi import APIRouter

from app.api.v1.endpoints import dataset, exports, health, producers

router = APIRouter(prefix='/api/v1')
router.include_router(health.router, tags=['health'])
router.include_router(dataset.router, prefix='/dataset', tags=['dataset'])
router.include_router(producers.router, prefix='/producers', tags=['producers'])
router.include_router(exports.router, prefix='/exports', tags=['exports'])
