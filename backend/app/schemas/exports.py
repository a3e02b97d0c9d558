from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import ColumnType

EXPORTABLE_TABLES = {
    'eficienciaTotal': 'Eficiencia Total',
    'eficienciaMensual': 'Eficiencia Mensual',
    'cotizacionesMensuales': 'Cotizaciones Mensuales',
    'contratosMensuales': 'Contratos Mensuales',
    'cotizacionesTotal': 'Resumen Cotizaciones',
    'contratosTotal': 'Resumen Contratos',
}


class ExportColumn(BaseModel):
    key: str = Field(min_length=1)
    label: str = Field(min_length=1)
    type: ColumnType = ColumnType.STRING


class TableExportIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    table: str = Field(default='eficienciaTotal')
    columns: list[ExportColumn] = Field(default_factory=list)
    sheet_name: str = Field(default='Ranking', alias='sheetName', min_length=1, max_length=31)
    file_prefix: str = Field(default='ranking_filtrado', alias='filePrefix', min_length=1, max_length=64)


class DashboardExportIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tables: list[str] = Field(default_factory=lambda: ['eficienciaTotal'])
    include_summary: bool = Field(default=True, alias='includeSummary')
