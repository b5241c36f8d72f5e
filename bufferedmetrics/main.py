"""Main entry point for the buffered metrics sidecar."""
import argparse
import logging
import sys

from bufferedmetrics.config import build_logger, load_config
from bufferedmetrics.control_api import ControlAPI
from bufferedmetrics.errors import ConfigurationError


def setup_logging(log_level: str, log_format: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format == "json":
        fmt = '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'
    else:
        fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

    logging.basicConfig(
        level=level,
        format=fmt,
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # Reduce noise from some libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def main(argv=None):
    """Main function."""
    parser = argparse.ArgumentParser(
        description="Buffered Metrics - aggregate points and flush them to a metrics backend"
    )
    parser.add_argument(
        "--config",
        "-c",
        required=True,
        help="Path to configuration YAML file"
    )

    args = parser.parse_args(argv)

    # Load configuration
    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.global_.log_level, config.global_.log_format)
    logger = logging.getLogger(__name__)

    logger.info(f"Configuration loaded from: {args.config}")
    logger.info(f"Reporter: {config.reporter.type}")
    logger.info(f"Flush interval: {config.logger.flush_interval_s}s")

    try:
        metrics_logger = build_logger(config)
    except ConfigurationError as e:
        logger.error(f"Failed to initialize metrics logger: {e}")
        sys.exit(1)

    control_api = ControlAPI(metrics_logger)

    logger.info(
        f"Starting control API on {config.global_.control_api_host}:{config.global_.control_api_port}"
    )
    # uvicorn handles SIGINT/SIGTERM and returns, then the final flush runs
    try:
        control_api.run(
            host=config.global_.control_api_host,
            port=config.global_.control_api_port
        )
    finally:
        metrics_logger.stop(flush=True)
        metrics_logger.reporter.shutdown()


if __name__ == "__main__":
    main()
