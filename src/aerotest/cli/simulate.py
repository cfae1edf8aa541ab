"""Single simulation CLI.

Usage:
    aerotest-simulate car.step --tier premium --out result.json

Outputs the AeroResult as JSON to stdout (or --out). Logs go to stderr.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import yaml

from ..core.constants import CAR_CLASSES, THRUST_MODELS, TIERS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a geometry-seeded aero simulation")
    parser.add_argument("file", type=str, help="Geometry file (STEP or STL)")
    parser.add_argument("--tier", type=str, default="standard", choices=TIERS, help="Sample tier")
    parser.add_argument(
        "--car-class", type=str, default="Professional", choices=CAR_CLASSES, help="Display label"
    )
    parser.add_argument(
        "--thrust-model", type=str, default="standard", choices=THRUST_MODELS, help="Display label"
    )
    parser.add_argument("--config", type=str, default=None, help="YAML engine config")
    parser.add_argument("--out", type=str, default=None, help="Write JSON here instead of stdout")
    parser.add_argument(
        "--include-flow-field", action="store_true", help="Include the flow-field point cloud"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARN",
        choices=["DEBUG", "INFO", "WARN", "ERROR"],
        help="Minimum log level (stderr)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run one simulation.

    Args:
        argv: Command-line arguments (uses sys.argv if None).

    Returns:
        Exit code (0 = success, 1 = config, read or engine failure).
    """
    args = build_parser().parse_args(argv)

    from ..core.config import default_config, load_config
    from ..core.engine import EngineFault, simulate_file
    from ..core.logging import get_logger, set_log_level
    from ..core.types import SimulationContext

    set_log_level(args.log_level)
    logger = get_logger(__name__)

    try:
        config = load_config(args.config) if args.config else default_config()
    except (OSError, ValueError, yaml.YAMLError) as exc:
        logger.error("Invalid engine config", path=args.config, error=str(exc))
        return 1

    ctx = SimulationContext(
        tier=args.tier,
        car_class=args.car_class,
        thrust_model=args.thrust_model,
    )

    try:
        result = simulate_file(args.file, ctx=ctx, config=config)
    except OSError as exc:
        logger.error("Cannot read geometry file", path=args.file, error=str(exc))
        return 1
    except EngineFault as exc:
        logger.error("Simulation failed", path=args.file, error=str(exc))
        return 1

    output = result.to_dict(include_flow_field=args.include_flow_field)
    output["content_hash"] = result.content_hash()
    text = json.dumps(output, indent=2)

    if args.out:
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(text + "\n")
        logger.info("Result written", path=str(out), result_id=result.id)
    else:
        print(text)

    return 0


if __name__ == "__main__":
    import sys

    sys.exit(main())
