from fastapi import HTTPException, Request, status

from app.core.dataset_cache import DatasetCache
from app.services.data_loader import DatasetLoader, DatasetLoadError


def get_dataset_cache(request: Request) -> DatasetCache:
    return request.app.state.dataset_cache


def get_dataset_loader(request: Request) -> DatasetLoader:
    return request.app.state.dataset_loader


async def load_dataset(loader: DatasetLoader, force: bool = False) -> dict:
    try:
        return await loader.load_all_data(force=force)
    except DatasetLoadError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                'error_code': 'DATASET_FETCH_ERROR',
                'message': 'No se pudieron obtener los datos de productores',
                'details': {'source': exc.source, 'error': exc.detail},
            },
        )
