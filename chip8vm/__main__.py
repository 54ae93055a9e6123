# ---- Entry point ----
import sys

from .cpu import Chip8
from .errors import LoadError
from .log import log_error


def main(argv=None):
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) != 1:
        print("Usage: python -m chip8vm <rom-file>", file=sys.stderr)
        sys.exit(1)

    chip8 = Chip8()
    try:
        chip8.load_rom(args[0])
    except LoadError as e:
        log_error("Failed to load ROM: %s", e)
        sys.exit(1)

    # Imported late so a bad command line never needs a display
    import pyglet
    from .frontend import Chip8Window

    Chip8Window(chip8)
    pyglet.app.run()


if __name__ == "__main__":
    main()
