# Console logging. Trace output is off unless switched on (F1 in the window),
# errors are always printed.
import sys

#make it true if you want the logs
logs_on = False


def set_logging(enabled):
    global logs_on
    logs_on = bool(enabled)


def toggle_logging():
    set_logging(not logs_on)
    return logs_on


def log(*args):
    if logs_on:
        print(*args)


def log_error(fmt, *args):
    if args:
        print(fmt % args, file=sys.stderr)
    else:
        print(fmt, file=sys.stderr)
