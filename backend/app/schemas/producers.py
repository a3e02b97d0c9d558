from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.enums import SortDirection

SORTABLE_KEYS = (
    'CodigoProductor',
    'productor',
    'Cotizaciones',
    'Contratos',
    'Porcentaje_Conversion',
    'Fecha_Actualizacion',
)


class SearchFilters(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    search_term: str = Field(default='', alias='searchTerm', max_length=120)
    min_conversion: float | None = Field(default=None, alias='minConversion', ge=0, le=100)
    max_conversion: float | None = Field(default=None, alias='maxConversion', ge=0, le=100)
    min_cotizaciones: int | None = Field(default=None, alias='minCotizaciones', ge=0)
    max_cotizaciones: int | None = Field(default=None, alias='maxCotizaciones', ge=0)

    @model_validator(mode='after')
    def validate_ranges(self):
        if self.min_conversion is not None and self.max_conversion is not None and self.min_conversion > self.max_conversion:
            raise ValueError('minConversion mayor que maxConversion')
        if (
            self.min_cotizaciones is not None
            and self.max_cotizaciones is not None
            and self.min_cotizaciones > self.max_cotizaciones
        ):
            raise ValueError('minCotizaciones mayor que maxCotizaciones')
        return self


class ProducerSearchIn(SearchFilters):
    sort_by: str = Field(default='Porcentaje_Conversion', alias='sortBy')
    sort_direction: SortDirection = Field(default=SortDirection.DESC, alias='sortDirection')
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, alias='pageSize', ge=1, le=500)

    @model_validator(mode='after')
    def validate_sort_key(self):
        if self.sort_by not in SORTABLE_KEYS:
            raise ValueError(f'sortBy inválido: {self.sort_by}')
        return self


class ProducerSearchOut(BaseModel):
    rows: list[dict]
    page: int
    page_size: int
    total_pages: int
    total: int
