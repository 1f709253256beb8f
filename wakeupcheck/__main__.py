import argparse

from .config import DEFAULT_CONFIG_PATH
from .lock import DEFAULT_LOCK_PATH

parser = argparse.ArgumentParser(
    "wakeupcheck",
    description="Decide whether to stay awake, notify or suspend again around a suspend cycle",
    formatter_class=argparse.ArgumentDefaultsHelpFormatter,
)
parser.add_argument("-v", "--verbose", help="increase output verbosity", action="count", default=0)
parser.add_argument("-c", "--config", help="YML configuration file", default=DEFAULT_CONFIG_PATH)
parser.add_argument("--lock", help="lock file serializing runs", default=DEFAULT_LOCK_PATH)
parser.add_argument("mode", nargs="?", help="'pre' before suspend, 'post' after resume")


if __name__ == "__main__":
    from .daemon import main

    raise SystemExit(main())
