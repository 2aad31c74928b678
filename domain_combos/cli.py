import argparse
import asyncio
import json
import logging
import math
import os
import sys
import tomllib
from pathlib import Path

from dotenv import load_dotenv

from . import Config, DomainScanner, __version__, total_combinations

CREDENTIAL_VARS = ("GODADDY_API_KEY", "GODADDY_API_SECRET")
CONFIG_TYPES = {
    "letters": int,
    "max_price": float,
    "batch_size": int,
    "delay": float,
    "output_file": Path,
    "log_file": Path,
    "env_file": Path,
    "api_url": str,
}


class ArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with exit status 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def parse_suffixes(text: str) -> tuple[str, ...]:
    """Split a comma-separated suffix list, trimming and dropping blanks."""
    return tuple(s.strip() for s in text.split(",") if s.strip())


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    defaults = Config()
    parser = ArgumentParser(
        description="Find available fixed-length letter domains via the GoDaddy API",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("letters", type=int, help="number of letters per combination")
    parser.add_argument(
        "suffixes",
        nargs="?",
        default=",".join(defaults.suffixes),
        help="comma-separated domain suffixes, e.g. .com,.io",
    )
    parser.add_argument("--to", dest="max_price", type=float, default=None, help="maximum price")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="print raw API payloads instead of per-domain status lines",
    )
    parser.add_argument("--config", type=Path, help="path to config file", default=None)
    parser.add_argument("--batch-size", type=int, default=defaults.batch_size)
    parser.add_argument("--delay", type=float, default=defaults.delay)
    parser.add_argument("--output", dest="output_file", type=Path, default=defaults.output_file)
    parser.add_argument("--log-file", type=Path, default=defaults.log_file)
    parser.add_argument("--api-url", type=str, default=defaults.api_url)
    parser.add_argument("--env-file", type=Path, default=Path(".env"))
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args(argv)

    if args.config:
        try:
            text = args.config.read_text()
            if args.config.suffix == ".toml":
                data = tomllib.loads(text)
            else:
                data = json.loads(text)
        except (OSError, ValueError) as e:
            parser.error(f"could not read config file {args.config}: {e}")
        for k, v in data.items():
            if not hasattr(args, k):
                continue
            convert = CONFIG_TYPES.get(k)
            try:
                setattr(args, k, convert(v) if convert and v is not None else v)
            except (TypeError, ValueError):
                parser.error(f"invalid value for {k!r} in {args.config}: {v!r}")

    if args.letters < 1:
        parser.error("letters must be a positive integer, e.g. 3 .com,.io --to 400")
    if isinstance(args.suffixes, list):
        args.suffixes = ",".join(str(s) for s in args.suffixes)
    elif not isinstance(args.suffixes, str):
        parser.error(f"invalid suffix list: {args.suffixes!r}")
    args.suffixes = parse_suffixes(args.suffixes)
    if not args.suffixes:
        parser.error("at least one domain suffix is required")
    if args.max_price is not None and (math.isnan(args.max_price) or args.max_price < 0):
        parser.error("invalid --to value, must be a non-negative number")
    if args.batch_size < 1:
        parser.error("--batch-size must be at least 1")
    if args.delay < 0:
        parser.error("--delay must not be negative")
    return args


def load_credentials(env_file: Path) -> tuple[str, str]:
    """Read the API key and secret, loading ``env_file`` first if present."""
    load_dotenv(env_file, override=False)
    missing = [name for name in CREDENTIAL_VARS if not os.environ.get(name)]
    if missing:
        sys.exit(f"Missing GoDaddy API credentials: {', '.join(missing)}")
    key, secret = (os.environ[name] for name in CREDENTIAL_VARS)
    return key, secret


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    api_key, api_secret = load_credentials(args.env_file)
    cfg = Config(
        letters=args.letters,
        suffixes=args.suffixes,
        max_price=args.max_price,
        verbose=args.verbose,
        batch_size=args.batch_size,
        delay=args.delay,
        output_file=Path(args.output_file),
        log_file=Path(args.log_file),
        api_url=args.api_url,
        api_key=api_key,
        api_secret=api_secret,
    )

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s: %(message)s",
        handlers=[
            logging.FileHandler(cfg.log_file),
            logging.StreamHandler(sys.stdout),
        ],
    )

    logging.getLogger(__name__).info(
        f"Config: {cfg.letters}-letter combos | Suffixes: {', '.join(cfg.suffixes)}"
        + (f" | Max price: ${cfg.max_price}" if cfg.max_price is not None else "")
        + (" | Verbose mode: ON" if cfg.verbose else "")
        + f" | {total_combinations(cfg.letters):,} possible combinations"
    )

    scanner = DomainScanner(cfg)
    asyncio.run(scanner.run())


if __name__ == "__main__":
    main()
