from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Response

from app.api.v1.endpoints.producers import producer_not_found
from app.core.deps import get_dataset_loader, load_dataset
from app.core.logging_config import structured_log
from app.schemas.exports import EXPORTABLE_TABLES, DashboardExportIn, TableExportIn
from app.services.data_loader import DatasetLoader
from app.services.export_service import (
    RANKING_COLUMNS,
    ExportFile,
    export_csv,
    export_dashboard_workbook,
    export_producer_workbook,
    export_table,
)
from app.services.producer_filters import producer_detail

router = APIRouter()


def _check_tables(tables: list[str]) -> None:
    unknown = [t for t in tables if t not in EXPORTABLE_TABLES]
    if unknown:
        raise HTTPException(
            status_code=400,
            detail={
                'error_code': 'INVALID_TABLE',
                'message': 'Tabla no exportable',
                'details': {'tables': unknown, 'allowed': sorted(EXPORTABLE_TABLES)},
            },
        )


def _download(file: ExportFile) -> Response:
    structured_log('info', 'export_generated', filename=file.filename, size=len(file.content))
    return Response(
        content=file.content,
        media_type=file.media_type,
        headers={'Content-Disposition': f"attachment; filename*=UTF-8''{quote(file.filename)}"},
    )


@router.post('/table')
async def export_table_xlsx(payload: TableExportIn, loader: DatasetLoader = Depends(get_dataset_loader)):
    _check_tables([payload.table])
    data = await load_dataset(loader)
    columns = payload.columns or RANKING_COLUMNS
    return _download(export_table(data[payload.table], columns, payload.sheet_name, payload.file_prefix))


@router.get('/producers/{code}')
async def export_producer_xlsx(code: str, loader: DatasetLoader = Depends(get_dataset_loader)):
    detail = producer_detail(await load_dataset(loader), code)
    if detail is None:
        raise producer_not_found(code)
    return _download(export_producer_workbook(detail))


@router.post('/dashboard')
async def export_dashboard_xlsx(payload: DashboardExportIn, loader: DatasetLoader = Depends(get_dataset_loader)):
    _check_tables(payload.tables)
    data = await load_dataset(loader)
    return _download(export_dashboard_workbook(data, payload.tables, payload.include_summary))


@router.get('/csv')
async def export_eficiencia_csv(loader: DatasetLoader = Depends(get_dataset_loader)):
    data = await load_dataset(loader)
    structured_log('info', 'export_generated', filename='Dashboard_Productores.csv', rows=len(data['eficienciaTotal']))
    return Response(
        content=export_csv(data['eficienciaTotal']),
        media_type='text/csv',
        headers={'Content-Disposition': 'attachment; filename="Dashboard_Productores.csv"'},
    )
