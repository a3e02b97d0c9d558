from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

_BLOB_BASE = 'https://hebbkx1anhila5yf.public.blob.vercel-storage.com'


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    app_name: str = 'productores-api-v1'
    app_env: str = Field(default='dev', alias='APP_ENV')
    app_port: int = Field(default=8000, alias='APP_PORT')

    cors_origins: str = Field(default='*', alias='CORS_ORIGINS')

    csv_eficiencia_total_url: str = Field(
        default=f'{_BLOB_BASE}/Eficiencia_Total_Productor-9DqEgA9OYBxI9BDFr5BmVodUOiphjL.csv',
        alias='CSV_EFICIENCIA_TOTAL_URL',
    )
    csv_eficiencia_mensual_url: str = Field(
        default=f'{_BLOB_BASE}/Eficiencia_Mensual_Productor-U0aw6PIxeew1VxlQ9j3jYZ7urAvJck.csv',
        alias='CSV_EFICIENCIA_MENSUAL_URL',
    )
    csv_cotizaciones_mensuales_url: str = Field(
        default=f'{_BLOB_BASE}/Cotizaciones_Mensuales_Productor-yOhPJSlcs5R9jeh6aXelY1ILOluCIz.csv',
        alias='CSV_COTIZACIONES_MENSUALES_URL',
    )
    csv_contratos_mensuales_url: str = Field(
        default=f'{_BLOB_BASE}/Contratos_Mensuales_Productor-r634KBOsiJ2fQjMskRxafPaY6Kf5it.csv',
        alias='CSV_CONTRATOS_MENSUALES_URL',
    )
    csv_cotizaciones_total_url: str = Field(
        default=f'{_BLOB_BASE}/Cotizaciones_Productores_Total-UzqfMuFQkIiRlVFSmvsLABFGThMDbl.csv',
        alias='CSV_COTIZACIONES_TOTAL_URL',
    )
    csv_productor_info_url: str = Field(
        default=f'{_BLOB_BASE}/CodigoProductor_NombreProductor-RuY9bmpPZr33kR6bf3ZK1YvlANZ4Mg.csv',
        alias='CSV_PRODUCTOR_INFO_URL',
    )
    csv_contratos_total_url: str = Field(
        default=f'{_BLOB_BASE}/Contratos_Productor_Total-jhC5KQ6owG8stREuldLimVbwMT5evW.csv',
        alias='CSV_CONTRATOS_TOTAL_URL',
    )
    csv_fetch_timeout_seconds: float = Field(default=30.0, alias='CSV_FETCH_TIMEOUT_SECONDS')

    dataset_cache_ttl_seconds: int = Field(default=300, alias='DATASET_CACHE_TTL_SECONDS')

    def csv_sources(self) -> dict[str, str]:
        """Dataset key -> CSV URL, in load order."""
        return {
            'eficienciaTotal': self.csv_eficiencia_total_url,
            'eficienciaMensual': self.csv_eficiencia_mensual_url,
            'cotizacionesMensuales': self.csv_cotizaciones_mensuales_url,
            'contratosMensuales': self.csv_contratos_mensuales_url,
            'cotizacionesTotal': self.csv_cotizaciones_total_url,
            'productorInfo': self.csv_productor_info_url,
            'contratosTotal': self.csv_contratos_total_url,
        }


settings = Settings()
