"""Command-line weather lookup built on the weather SDK."""
import argparse
import json
import logging
import signal
import sys
import time
from typing import List, Optional

from sdk_config import SDKMode, WeatherSDKBuilder, load_config_from_env
from sdk_metrics import SDKMetrics
from weather_provider import ConfigurationError, WeatherProviderError
from weather_service import WeatherService


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("Current weather lookup")
    parser.add_argument("cities", nargs="+", help="City names to look up")
    parser.add_argument("--mode", choices=[m.value for m in SDKMode], default=None)
    parser.add_argument("--polling-interval", type=float, default=None, help="Seconds between background refreshes")
    parser.add_argument("--cache-size", type=int, default=None)
    parser.add_argument("--cache-ttl", type=float, default=None, help="Cache TTL in seconds")
    parser.add_argument("--max-attempts", type=int, default=None)
    parser.add_argument("--retry-delay-ms", type=int, default=None)
    parser.add_argument("--connect-timeout", type=float, default=None, help="HTTP connect timeout in seconds")
    parser.add_argument("--read-timeout", type=float, default=None, help="HTTP read timeout in seconds")
    parser.add_argument("--watch", type=float, default=None, help="Repeat lookups every N seconds until interrupted")
    parser.add_argument("--log-file", default=None)
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def setup_logging(log_file: Optional[str], verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(threadName)s - %(message)s",
        handlers=handlers
    )


def build_builder(args: argparse.Namespace) -> WeatherSDKBuilder:
    """Environment settings overridden by any flags given on the command line."""
    builder = load_config_from_env()
    if args.mode is not None:
        builder.mode(SDKMode.parse(args.mode))
    if args.polling_interval is not None:
        builder.polling_interval(args.polling_interval)
    if args.cache_size is not None:
        builder.cache_size(args.cache_size)
    if args.cache_ttl is not None:
        builder.cache_ttl(args.cache_ttl)
    if args.max_attempts is not None:
        builder.max_attempts(args.max_attempts)
    if args.retry_delay_ms is not None:
        builder.retry_delay_ms(args.retry_delay_ms)
    if args.connect_timeout is not None:
        builder.connect_timeout(args.connect_timeout)
    if args.read_timeout is not None:
        builder.read_timeout(args.read_timeout)
    return builder


def format_metrics(metrics: SDKMetrics) -> str:
    return (
        f"requests={metrics.total_requests} success={metrics.success_rate:.1f}% "
        f"cache hits={metrics.cache_hits} misses={metrics.cache_misses} "
        f"(hit rate {metrics.cache_hit_rate:.1f}%) avg={metrics.average_response_time_ms:.1f}ms"
    )


def lookup_cities(service: WeatherService, cities: List[str]) -> int:
    """Print weather for each city as JSON; returns the number of failures."""
    failures = 0
    for city in cities:
        try:
            weather = service.get_weather(city)
            print(json.dumps(weather.to_dict(), indent=2))
        except WeatherProviderError as err:
            logging.error("Weather lookup for %s failed: %s", city, err)
            failures += 1
        except ValueError as err:
            logging.error("Invalid city %r: %s", city, err)
            failures += 1
    return failures


def signal_handler(signum, frame):
    logging.info("Received signal %s, shutting down", signum)
    raise KeyboardInterrupt()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)

    try:
        config = build_builder(args).build()
    except ConfigurationError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    service = WeatherService(config)
    failures = 0
    try:
        failures = lookup_cities(service, args.cities)
        while args.watch:
            logging.info("Metrics: %s", format_metrics(service.get_metrics()))
            time.sleep(max(args.watch, 1.0))
            failures = lookup_cities(service, args.cities)
        print(format_metrics(service.get_metrics()))
    except KeyboardInterrupt:
        logging.info("Stopping")
    finally:
        service.shutdown()

    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
