from fastapi import APIRouter, Depends

from app.core.deps import get_dataset_loader, load_dataset
from app.schemas.common import MessageOut
from app.services.data_loader import DatasetLoader

router = APIRouter()


@router.get('')
async def dataset(loader: DatasetLoader = Depends(get_dataset_loader)):
    return await load_dataset(loader)


@router.get('/metrics')
async def dataset_metrics(loader: DatasetLoader = Depends(get_dataset_loader)):
    data = await load_dataset(loader)
    return {'performanceMetrics': data['performanceMetrics'], 'meta': data['meta']}


@router.get('/meta')
async def dataset_meta(loader: DatasetLoader = Depends(get_dataset_loader)):
    data = await load_dataset(loader)
    return data['meta']


@router.post('/refresh')
async def dataset_refresh(loader: DatasetLoader = Depends(get_dataset_loader)):
    data = await load_dataset(loader, force=True)
    return data['meta']


@router.delete('/cache', response_model=MessageOut)
def dataset_cache_clear(loader: DatasetLoader = Depends(get_dataset_loader)):
    removed = loader.invalidate()
    return MessageOut(message=f'cache limpiada ({removed} entradas)')
