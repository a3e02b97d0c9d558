from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.deps import get_dataset_loader, load_dataset
from app.schemas.producers import ProducerSearchIn, ProducerSearchOut
from app.services.analytics_service import TOP_LIMIT
from app.services.data_loader import DatasetLoader
from app.services.producer_filters import apply_advanced_filters, paginate, producer_detail, sort_rows

router = APIRouter()


def producer_not_found(code: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={
            'error_code': 'PRODUCER_NOT_FOUND',
            'message': 'Productor no encontrado',
            'details': {'codigo': code},
        },
    )


@router.post('/search', response_model=ProducerSearchOut)
async def producers_search(payload: ProducerSearchIn, loader: DatasetLoader = Depends(get_dataset_loader)):
    data = await load_dataset(loader)
    rows = apply_advanced_filters(data['eficienciaTotal'], payload)
    rows = sort_rows(rows, payload.sort_by, payload.sort_direction.value)
    return paginate(rows, payload.page, payload.page_size)


@router.get('/ranking/top')
async def producers_top(
    limit: int = Query(default=TOP_LIMIT, ge=1, le=TOP_LIMIT),
    loader: DatasetLoader = Depends(get_dataset_loader),
):
    metrics = (await load_dataset(loader))['performanceMetrics']
    return {
        'topPerformers': metrics['topPerformers'][:limit],
        'opportunityProducers': metrics['opportunityProducers'][:limit],
    }


@router.get('/{code}')
async def producer_by_code(code: str, loader: DatasetLoader = Depends(get_dataset_loader)):
    detail = producer_detail(await load_dataset(loader), code)
    if detail is None:
        raise producer_not_found(code)
    return detail
