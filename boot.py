import argparse
import logging
import sys

from arena_config import ArenaConfig, split_list
from arena_scene import ArenaScene
from game_context import GameContext
from relay import RelayClient
from scene_manager import SceneManager

log = logging.getLogger("rollplay")


def parse_args(argv=None, base=None):
    base = base or ArenaConfig.from_env()
    parser = argparse.ArgumentParser(description="Rollplay arena client.")
    parser.add_argument("--relay-host", default=base.relay_host)
    parser.add_argument("--relay-port", type=int, default=base.relay_port)
    parser.add_argument("--session", default=base.session_code)
    parser.add_argument("--user", default=base.user_id)
    parser.add_argument("--host", dest="is_host", action="store_true", default=base.is_host)
    parser.add_argument("--seat", type=int, default=base.seat_hint)
    parser.add_argument("--players", default=",".join(base.players), help="comma separated roster, join order")
    parser.add_argument("--plan", default=",".join(base.plan), help="comma separated minigame ids")
    parser.add_argument("--seed", type=int, default=base.seed)
    parser.add_argument("--debug", action="store_true", default=base.debug)
    args = parser.parse_args(argv)

    return ArenaConfig(
        relay_host=args.relay_host,
        relay_port=args.relay_port,
        session_code=args.session or base.session_code,
        user_id=args.user or "",
        is_host=args.is_host,
        seat_hint=args.seat,
        players=split_list(args.players),
        plan=split_list(args.plan),
        input_hz=base.input_hz,
        stall_window=base.stall_window,
        seed=args.seed,
        width=base.width,
        height=base.height,
        fps=base.fps,
        debug=args.debug,
    )


def main(argv=None):
    config = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    relay = RelayClient(user_id=config.user_id)
    relay.join(config.session_code)
    if not relay.connect(config.relay_host, config.relay_port):
        # keep going; the round scenes show the relay status
        log.warning("relay %s:%s unavailable (%s)", config.relay_host, config.relay_port, relay.status)

    context = GameContext(
        session_code=config.session_code,
        players=config.roster(),
        is_host=config.is_host,
        my_user_id=config.user_id,
        my_seat_index=config.seat_hint,
        relay=relay,
        plan=config.plan,
    )
    log.info("starting %r", context)

    manager = SceneManager(
        lambda m: ArenaScene(m, context=context, launch_kwargs=config.launch_kwargs()),
        size=(config.width, config.height),
        fps=config.fps,
    )
    try:
        manager.run()
    finally:
        relay.disconnect()
    return 0


if __name__ == "__main__":
    sys.exit(main())
