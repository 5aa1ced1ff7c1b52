import sys

from .cli import backup_main, restore_main

COMMANDS = {"backup": backup_main, "restore": restore_main}


def main() -> int:
    if len(sys.argv) < 2 or sys.argv[1] not in COMMANDS:
        print("usage: python -m nano_kvbackup {backup,restore} [options]", file=sys.stderr)
        return 1
    return COMMANDS[sys.argv[1]](sys.argv[2:])


if __name__ == "__main__":
    sys.exit(main())
