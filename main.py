# -- coding: utf-8 --

import argparse
import logging
import time

from camera import create_source_from_loaded_config
from core.config import ConfigError, known_pixel_formats, load_config, validate_config
from core.controller import CaptureController
from storage import create_storage_from_loaded_config
from trigger import build_trigger_config_from_loaded_config


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Depth capture runtime: save RGB + depth frames (config-driven)",
    )
    p.add_argument(
        "--config-dir", default="config", help="Directory containing main_*.yaml"
    )
    p.add_argument("--verbose", action="store_true", help="Debug log")
    p.add_argument(
        "--log-level", default="", help="Override log level (debug/info/warning/error)"
    )
    p.add_argument(
        "--mode",
        choices=("single", "continuous"),
        default="",
        help="Override capture.mode",
    )
    p.add_argument(
        "--list", action="store_true", help="List saved artifacts (newest first)"
    )
    return p.parse_args(argv)


def setup_logging(verbose: bool, log_level: str = ""):
    if verbose:
        level = logging.DEBUG
    else:
        level_map = {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "warn": logging.WARNING,
            "error": logging.ERROR,
            "critical": logging.CRITICAL,
        }
        level = level_map.get(str(log_level or "").strip().lower(), logging.INFO)
    # Use UTC for all %(asctime)s timestamps in logs.
    logging.Formatter.converter = time.gmtime
    logging.basicConfig(
        level=level, format="%(asctime)sZ [%(levelname)s] %(message)s", force=True
    )


def run_continuous(controller: CaptureController, runtime_limit_s: float | None):
    controller.start_continuous()
    start_ts = time.perf_counter()
    try:
        while runtime_limit_s is None or (
            time.perf_counter() - start_ts
        ) < runtime_limit_s:
            time.sleep(0.1)
        logging.info("Runtime limit reached (%ss); stopping capture", runtime_limit_s)
    finally:
        controller.stop_continuous()


def main(argv=None):
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_level)
    try:
        cfg = load_config(args.config_dir)
        validate_config(cfg)
    except ConfigError as e:
        logging.error("Config invalid: %s", e)
        raise SystemExit(1) from e
    # Config-driven log level (unless overridden by CLI).
    if not args.verbose and not args.log_level:
        setup_logging(args.verbose, cfg.runtime.log_level)

    try:
        storage = create_storage_from_loaded_config(cfg)
    except ValueError as e:
        logging.error("Config invalid: %s", e)
        raise SystemExit(1) from e

    if args.list:
        for location in storage.list_saved():
            print(location)
        return

    mode = args.mode or str(cfg.capture.mode).strip().lower()
    runtime_limit_s = float(cfg.runtime.max_runtime_s)
    if str(cfg.source.pixel_format).strip().lower() not in known_pixel_formats():
        logging.warning(
            "source.pixel_format=%r is not decodable; depth will be skipped",
            cfg.source.pixel_format,
        )
    logging.info(
        "Starting: source=%s storage=%s mode=%s interval=%sms runtime=%s",
        cfg.source.type,
        storage.describe() or cfg.storage.type,
        mode,
        cfg.capture.interval_ms,
        f"{runtime_limit_s}s" if runtime_limit_s > 0 else "unlimited",
    )
    logging.info("Config files: main=%s", cfg.paths.get("main"))

    try:
        source = create_source_from_loaded_config(cfg)
    except ValueError as e:
        logging.error("Config invalid: %s", e)
        raise SystemExit(1) from e

    controller = CaptureController(
        source,
        storage,
        trigger_cfg=build_trigger_config_from_loaded_config(cfg),
    )
    try:
        with source.session(), controller:
            if mode == "single":
                controller.capture_single()
            else:
                run_continuous(
                    controller, runtime_limit_s if runtime_limit_s > 0 else None
                )
            logging.info("Done: %s", controller.status)
    except KeyboardInterrupt:
        logging.info("Capture STOPPED by user (Ctrl+C): %s", controller.status)
    except Exception:
        logging.exception("Error")
        raise


if __name__ == "__main__":
    main()
