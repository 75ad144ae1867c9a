import argparse
import logging
import sys

from tty2048.game import Direction, Game, GameConfig
from tty2048.keys import KeyReader

logger = logging.getLogger("tty2048")

key_mapping = {
    "w": Direction.UP,
    "d": Direction.RIGHT,
    "s": Direction.DOWN,
    "a": Direction.LEFT,
    "up": Direction.UP,
    "right": Direction.RIGHT,
    "down": Direction.DOWN,
    "left": Direction.LEFT,
}

exit_keys = {"esc", "c", "q", "\x03"}

# the board is seven lines tall
REDRAW = "\x1b[7F"


def handle_key(game: Game, key: str | None) -> bool | None:
    """
    Apply one key press. Return whether the game goes on, or None if the key
    is not bound to anything.
    """
    if key in exit_keys:
        return False
    if key in key_mapping:
        return game.move(key_mapping[key])
    return None


def play_raw(game: Game, out=None):
    out = out if out is not None else sys.stdout
    board = game.render_text()
    out.write(board.replace("\n", "\r\n"))
    out.flush()

    with KeyReader() as keys:
        while True:
            key = keys.poll(game.config.poll_interval)
            if key is None:
                continue

            go_on = handle_key(game, key)
            if go_on is None:
                continue

            out.write(REDRAW + game.render_text().replace("\n", "\r\n"))
            out.flush()

            if not go_on:
                logger.info("session ended on key %r", key)
                return


def play_lines(game: Game, out=None, inp=None):
    out = out if out is not None else sys.stdout
    inp = inp if inp is not None else sys.stdin
    out.write(game.render_text())
    out.flush()

    for line in inp:
        key = line.strip()
        go_on = handle_key(game, key)
        if go_on is None:
            continue
        out.write(game.render_text())
        out.flush()
        if not go_on:
            logger.info("session ended on key %r", key)
            return


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play 2048 in the terminal")
    parser.add_argument("--seed", type=int, default=None, help="Seed for tile placement")
    parser.add_argument(
        "--strict-spawn",
        action="store_true",
        help="Only spawn a tile after a move that shifted or merged something",
    )
    parser.add_argument("--poll-interval", type=float, default=1.0, help="Seconds per key poll")
    parser.add_argument("--log-level", default="WARNING")
    parser.add_argument("--log-file", default=None)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        filename=args.log_file,
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = GameConfig(spawn_on_noop=not args.strict_spawn, poll_interval=args.poll_interval)
    game = Game(seed=args.seed, config=config)

    try:
        if sys.stdin.isatty():
            play_raw(game)
        else:
            play_lines(game)
    except KeyboardInterrupt:
        logger.info("interrupted")

    if game.is_lost():
        print(f"Game over! Points: {game.score}")
    else:
        print(f"Bye! Points: {game.score}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
