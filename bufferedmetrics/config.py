"""Configuration models using Pydantic for validation."""
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
import os

from bufferedmetrics.logger import BufferedMetricsLogger
from bufferedmetrics.reporters import DEFAULT_DATADOG_API_HOST, DataDogReporter, NullReporter, OTELReporter
from bufferedmetrics.self_metrics import SelfMetrics


class DataDogReporterConfig(BaseModel):
    """DataDog HTTP reporter configuration."""
    api_key: Optional[str] = None
    app_key: Optional[str] = None
    api_host: str = DEFAULT_DATADOG_API_HOST
    timeout_s: float = 10.0


class OTELReporterConfig(BaseModel):
    """OpenTelemetry push reporter configuration."""
    endpoint: str = "localhost:4317"
    insecure: bool = True
    export_interval_s: int = 10
    headers: Dict[str, str] = Field(default_factory=dict)
    resource: Dict[str, str] = Field(default_factory=dict)


class ReporterConfig(BaseModel):
    """Which reporter receives flushed batches, and its settings."""
    type: Literal["datadog", "otel", "null"] = "datadog"
    datadog: DataDogReporterConfig = Field(default_factory=DataDogReporterConfig)
    otel: OTELReporterConfig = Field(default_factory=OTELReporterConfig)


class LoggerConfig(BaseModel):
    """Buffered logger settings."""
    default_tags: List[str] = Field(default_factory=list)
    host: str = ""
    prefix: str = ""
    flush_interval_s: Optional[float] = 15

    @field_validator('flush_interval_s')
    @classmethod
    def validate_flush_interval(cls, v):
        """Auto-flush interval must be positive when set."""
        if v is not None and v <= 0:
            raise ValueError("flush_interval_s must be positive")
        return v


class SelfMetricsConfig(BaseModel):
    """Self-monitoring settings."""
    enabled: bool = True
    prefix: str = "bufferedmetrics_"


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"
    control_api_host: str = "127.0.0.1"
    control_api_port: int = 8125


class Config(BaseModel):
    """Root configuration model."""
    model_config = ConfigDict(populate_by_name=True)

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    logger: LoggerConfig = Field(default_factory=LoggerConfig)
    reporter: ReporterConfig = Field(default_factory=ReporterConfig)
    self_metrics: SelfMetricsConfig = Field(default_factory=SelfMetricsConfig)


def load_config(config_path: str) -> Config:
    """Load and validate configuration from YAML file."""
    import yaml

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        raw_config = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    reporter = raw_config.setdefault('reporter', {})
    if env_api_key := os.getenv('DATADOG_API_KEY'):
        reporter.setdefault('datadog', {})['api_key'] = env_api_key

    if env_app_key := os.getenv('DATADOG_APP_KEY'):
        reporter.setdefault('datadog', {})['app_key'] = env_app_key

    if env_endpoint := os.getenv('OTEL_ENDPOINT'):
        reporter.setdefault('otel', {})['endpoint'] = env_endpoint

    if env_log_level := os.getenv('LOG_LEVEL'):
        raw_config.setdefault('global', {})['log_level'] = env_log_level

    try:
        config = Config(**raw_config)
        return config
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")


def build_reporter(config: ReporterConfig):
    """Create the reporter selected by the configuration."""
    if config.type == "datadog":
        return DataDogReporter(**config.datadog.model_dump())
    elif config.type == "otel":
        return OTELReporter(**config.otel.model_dump())
    elif config.type == "null":
        return NullReporter()
    else:
        raise ValueError(f"Unknown reporter type: {config.type}")


def build_logger(config: Config, autostart: bool = True):
    """Wire a BufferedMetricsLogger from a validated configuration."""
    self_metrics = None
    if config.self_metrics.enabled:
        self_metrics = SelfMetrics(prefix=config.self_metrics.prefix)

    return BufferedMetricsLogger(
        reporter=build_reporter(config.reporter),
        default_tags=config.logger.default_tags,
        host=config.logger.host,
        prefix=config.logger.prefix,
        flush_interval_seconds=config.logger.flush_interval_s,
        self_metrics=self_metrics,
        autostart=autostart
    )
