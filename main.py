from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from mandelbrot_render.config import default_render_config, load_named_sweep_configs
from mandelbrot_render.execution import run_single_render, run_sweep


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Render the Mandelbrot set as a grayscale PNG.")
    parser.add_argument("--sweep", type=str, help="Path to sweep YAML file")
    parser.add_argument("--suite", type=str, help="Name of suite/experiment within sweep file")
    parser.add_argument("--list-suites", action="store_true", help="List suites in sweep file")
    parser.add_argument("--task-id", type=int, help="Run specific config index (for batch arrays)")
    parser.add_argument("--output-dir", type=str, help="Directory for images named after each run")

    # Direct run parameters
    parser.add_argument("--image-size", type=str, help="Image size as WIDTHxHEIGHT, e.g. 1000x750")
    parser.add_argument("--upper-left", type=str, help="Upper-left corner as RE,IM, e.g. -1.20,0.35")
    parser.add_argument("--lower-right", type=str, help="Lower-right corner as RE,IM, e.g. -1,0.20")
    parser.add_argument("--workers", type=int, help="Number of bands rendered in parallel")
    parser.add_argument("--limit", type=int, help="Escape-time iteration limit")
    parser.add_argument("--output", type=str, help="Output image path")

    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    # Handle sweep runs
    if args.sweep:
        sweep_path = Path(args.sweep)

        if args.list_suites:
            suites = load_named_sweep_configs(sweep_path)
            for name, configs in suites:
                label = name or sweep_path.stem
                print(f"{label}: {len(configs)} configurations")
            return 0

        if args.task_id is not None and args.suite is None:
            sys.exit("ERROR: --task-id requires --suite")

        suites = load_named_sweep_configs(sweep_path, args.suite)

        exit_code = 0
        for suite_name, configs in suites:
            if args.output_dir:
                configs = [replace(cfg, output_dir=args.output_dir) for cfg in configs]
            descriptor = f"{sweep_path}::{suite_name}" if suite_name else str(sweep_path)
            rc = run_sweep(sweep_path, args.task_id, suite_name, configs, descriptor)
            exit_code = exit_code or rc
        return exit_code

    if args.suite or args.list_suites or args.task_id is not None:
        sys.exit("ERROR: --suite, --list-suites and --task-id require --sweep")

    # Handle direct CLI run
    if not args.image_size:
        sys.exit("ERROR: Direct run requires --image-size")

    overrides = {"image_size": args.image_size}
    for key in ("upper_left", "lower_right", "workers", "limit", "output", "output_dir"):
        value = getattr(args, key)
        if value is not None:
            overrides[key] = value

    try:
        config = default_render_config(**overrides)
    except ValueError as exc:
        sys.exit(f"ERROR: {exc}")

    run_single_render(config, None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
