"""Command-line entry point: ``python -m neuroroad`` or the ``neuroroad`` script."""

import argparse
import logging
import sys

from .config import SimConfig
from .errors import ConfigurationError
from .logging_setup import setup_logging
from .simulation import Simulation

log = logging.getLogger("cli")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="neuroroad",
        description="Evolve neural-network drivers on an endless multi-lane road.")
    parser.add_argument("--population", type=int, help="Number of AI cars")
    parser.add_argument("--traffic", type=int, help="Number of scripted traffic cars")
    parser.add_argument("--lanes", type=int, help="Lanes on the road")
    parser.add_argument("--workers", type=int, help="Threads used to update the roster")
    parser.add_argument("--batched", action="store_true", help="Evaluate all brains in one torch pass")
    parser.add_argument("--generation-frames", type=int,
                        help="Rebuild the roster every N frames (0 disables)")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--player", action="store_true", help="Add a car driven with the arrow keys")
    parser.add_argument("--headless", action="store_true", help="Run without a window")
    parser.add_argument("--frames", type=int, help="Stop after N frames (headless only)")
    parser.add_argument("--fast", action="store_true", help="Headless: do not sleep between frames")
    parser.add_argument("--checkpoint-dir", help="Directory for best.json / second_best.json")
    parser.add_argument("--no-checkpoints", action="store_true", help="Never read or write checkpoints")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", default="neuroroad.log", help="Rotating log file ('' disables)")
    return parser


def config_from_args(args):
    config = SimConfig().with_overrides(
        population_size=args.population,
        traffic_size=args.traffic,
        road_lanes=args.lanes,
        workers=args.workers,
        generation_frames=args.generation_frames,
        seed=args.seed,
        checkpoint_dir=args.checkpoint_dir,
        batched=args.batched or None,
        with_player=(args.player and not args.headless) or None,
    )
    if args.no_checkpoints:
        config = config.with_overrides(checkpoint_dir="")
    return config.validate()


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(getattr(logging, args.log_level), args.log_file or None)

    try:
        sim = Simulation(config_from_args(args))
    except ConfigurationError as e:
        log.error("invalid configuration: %s", e)
        return 2

    with sim:
        try:
            if args.headless:
                state = sim.run(args.frames, realtime=not args.fast)
                log.info("stopped at frame %d, generation %d, %d crashes",
                         state.frame, state.generation, state.crashes)
            else:
                # pygame is only needed for the window
                import pygame
                from .viewer import Viewer
                try:
                    viewer = Viewer(sim)
                except pygame.error as e:
                    log.error("could not open the window: %s", e)
                    return 1
                viewer.run()
        except KeyboardInterrupt:
            log.info("interrupted at frame %d", sim.state.frame)
    return 0


if __name__ == "__main__":
    sys.exit(main())
