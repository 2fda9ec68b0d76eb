# doctalk/config.py
from typing import Annotated, List, Optional
from pydantic_settings import BaseSettings, NoDecode
from pydantic import AliasChoices, Field, field_validator

class Settings(BaseSettings):
    # DB
    database_url: str = Field("postgresql+asyncpg://localhost:5432/doctalk", env="DATABASE_URL")

    # Identity tokens
    signing_key: str = Field("changeme", validation_alias=AliasChoices("signing_key", "JWT_SECRET"))
    jwt_algorithm: str = Field("HS256", env="JWT_ALGORITHM")

    # MinIO / S3-compatible object store
    minio_endpoint: str = Field("localhost:9000", env="MINIO_ENDPOINT")
    minio_access_key: Optional[str] = Field(None, env="MINIO_ACCESS_KEY")
    minio_secret_key: Optional[str] = Field(None, env="MINIO_SECRET_KEY")
    minio_secure: bool = Field(False, env="MINIO_SECURE")
    minio_bucket: str = Field("documents", env="MINIO_BUCKET")
    # public base for object URLs, e.g. a CDN in front of the bucket
    storage_public_url: Optional[str] = Field(None, env="STORAGE_PUBLIC_URL")
    storage_folder: str = Field("doctalk/documents", env="STORAGE_FOLDER")

    # Uploads
    max_upload_size: int = Field(10 * 1024 * 1024, env="MAX_UPLOAD_SIZE")
    allowed_extensions: Annotated[List[str], NoDecode] = Field([".pdf"], env="ALLOWED_EXTENSIONS")
    allowed_content_types: Annotated[List[str], NoDecode] = Field(
        ["application/pdf", "application/x-pdf"], env="ALLOWED_CONTENT_TYPES"
    )

    # text extraction: "positioned" (baseline line rebuild) or "plain" (pypdf layout)
    extraction_strategy: str = Field("positioned", env="EXTRACTION_STRATEGY")

    # CORS
    cors_origins: Annotated[List[str], NoDecode] = Field(["*"], env="CORS_ORIGINS")

    host: str = Field("0.0.0.0", env="HOST")
    port: int = Field(3000, env="PORT")

    # Prometheus
    prometheus_enabled: bool = Field(True, env="PROMETHEUS_ENABLED")

    # Pydantic v2 config
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # ---- field validators (pydantic v2 style) ----
    @field_validator("allowed_extensions", "allowed_content_types", mode="before")
    def _split_lists(cls, v):
        """
        Allows list settings as comma-separated strings in env, or as a list.
        Example: '.pdf,.PDF'
        """
        if isinstance(v, str):
            return [s.strip().lower() for s in v.split(",") if s.strip()]
        return v

    @field_validator("cors_origins", mode="before")
    def _split_cors_origins(cls, v):
        """
        Allows CORS_ORIGINS as comma-separated string in env, or as a list.
        """
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("max_upload_size", mode="before")
    def _validate_max_upload_size(cls, v):
        """
        Accepts the env value as string or int and ensures it's a positive int.
        """
        if isinstance(v, str) and v.isdigit():
            v = int(v)
        if not isinstance(v, int) or v <= 0:
            raise ValueError("MAX_UPLOAD_SIZE must be a positive integer")
        return v

    @field_validator("storage_folder", mode="before")
    def _strip_folder(cls, v):
        if v is None:
            return "doctalk/documents"
        return str(v).strip().strip("/")

    @property
    def max_upload_size_label(self) -> str:
        mb = self.max_upload_size / (1024 * 1024)
        return f"{mb:g}MB"

settings = Settings()
