#!/usr/bin/env python3
import asyncio
import enum
import itertools
import json
import logging
import signal
import string
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator

import aiofiles
import aiohttp
from tqdm import tqdm

logger = logging.getLogger(__name__)

__version__ = "1.0.0"

LETTERS = string.ascii_lowercase
AVAILABLE_STRINGS = ("true", "available")
MINOR_UNIT_THRESHOLD = 1000
# Checked in this order, first non-null wins
PRICE_PATHS = (
    ("price",),
    ("priceInfo", "price"),
    ("period", "price"),
    ("pricing", "price"),
)


@dataclass(frozen=True)
class Config:
    """Configuration options for a scan run."""

    letters: int = 3
    suffixes: tuple[str, ...] = (".com",)
    max_price: float | None = None
    verbose: bool = False
    batch_size: int = 50
    delay: float = 2.0
    output_file: Path = Path("available.json")
    log_file: Path = Path("lookup.log")
    api_url: str = "https://api.ote-godaddy.com/v1/domains/available?checkType=FULL"
    api_key: str = ""
    api_secret: str = ""


@dataclass
class LookupResult:
    """Normalized availability answer for one domain."""

    domain: str
    available: bool
    price: float | None = None


@dataclass
class Match:
    """Available domain kept for the output file."""

    domain: str
    price: float | None = None

    def __str__(self) -> str:
        s = self.domain
        if self.price is not None:
            s += f" ${self.price:.2f}"
        return s


class Outcome(enum.Enum):
    TAKEN = "taken"
    AVAILABLE = "available"
    OVER_BUDGET = "over_budget"


def match_to_dict(m: Match) -> dict:
    """Convert a ``Match`` to a serializable dictionary."""

    data = asdict(m)
    if m.price is None:
        data.pop("price")
    return data


# --- Helpers --- #


def total_combinations(length: int) -> int:
    return len(LETTERS) ** length


def generate_combos(length: int) -> Iterator[str]:
    """Yield every ``length``-letter lowercase string in lexicographic order.

    Each call returns a fresh iterator; nothing is materialized up front.
    """
    for chars in itertools.product(LETTERS, repeat=length):
        yield "".join(chars)


def batch_domains(combos: Iterable[str], suffix: str, size: int) -> Iterator[list[str]]:
    """Group ``combo + suffix`` strings into lists of at most ``size`` items.

    Args:
        combos: Candidate labels in the order they should be queried.
        suffix: Domain suffix appended to every label, e.g. ``.com``.
        size: Maximum chunk size. Only the last chunk may be shorter.
    """
    batch: list[str] = []
    for combo in combos:
        batch.append(f"{combo}{suffix}")
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch


def is_available(value: Any) -> bool:
    """Interpret the API's availability flag.

    Only ``True``, ``"true"`` and ``"available"`` count as available.
    """
    return value is True or (isinstance(value, str) and value in AVAILABLE_STRINGS)


def normalize_price(value: float) -> float:
    """Convert a price reported in minor units to major units.

    Values above 1000 are assumed to be cents and divided by 100.
    """
    return value / 100 if value > MINOR_UNIT_THRESHOLD else value


def extract_price(raw: dict) -> float | None:
    """Return the normalized price from a raw domain result, if any."""
    for path in PRICE_PATHS:
        value: Any = raw
        for key in path:
            value = value.get(key) if isinstance(value, dict) else None
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.warning(f"Ignoring non-numeric price {value!r} for {raw.get('domain')}")
            continue
        return normalize_price(value)
    return None


def normalize_result(raw: dict) -> LookupResult:
    return LookupResult(
        domain=raw.get("domain", ""),
        available=is_available(raw.get("available")),
        price=extract_price(raw),
    )


def classify(result: LookupResult, max_price: float | None = None) -> Outcome:
    """Place a lookup result into exactly one outcome bucket."""
    if not result.available:
        return Outcome.TAKEN
    if max_price is None or result.price is None or result.price <= max_price:
        return Outcome.AVAILABLE
    return Outcome.OVER_BUDGET


class AvailabilityClient:
    """Thin wrapper around the GoDaddy bulk availability endpoint."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_url: str,
        api_key: str,
        api_secret: str,
        verbose: bool = False,
    ) -> None:
        self.session = session
        self.api_url = api_url
        self.verbose = verbose
        self.headers = {
            "Authorization": f"sso-key {api_key}:{api_secret}",
            "Content-Type": "application/json",
        }

    async def check_batch(self, domains: list[str]) -> list[dict]:
        """Query availability for one chunk of domains.

        Args:
            domains: Fully qualified domain names, at most one batch.

        Returns:
            Raw per-domain result objects. Any failure yields an empty list
            so the caller can move on to the next chunk.
        """
        if self.verbose:
            logger.info(f"Request payload: {json.dumps(domains, indent=2)}")
        try:
            async with self.session.post(
                self.api_url, json=domains, headers=self.headers
            ) as resp:
                if not 200 <= resp.status < 300:
                    body = await resp.text()
                    logger.error(f"API error ({resp.status}): {body}")
                    if self.verbose:
                        logger.info(
                            "Full API error response: "
                            + json.dumps({"status": resp.status, "body": body}, indent=2)
                        )
                    return []
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, json.JSONDecodeError) as e:
            logger.error(f"Request for {len(domains)} domains failed: {e}")
            return []

        if self.verbose:
            logger.info(f"Full API response: {json.dumps(data, indent=2)}")

        results = data.get("domains") if isinstance(data, dict) else None
        if not isinstance(results, list):
            logger.error("API response did not contain a domain list")
            return []
        return results


class DomainScanner:
    """Drive the generate, batch, query and record loop for every suffix."""

    def __init__(self, config: Config | None = None) -> None:
        if config is None:
            config = Config()

        self.letters = config.letters
        self.suffixes = config.suffixes
        self.max_price = config.max_price
        self.verbose = config.verbose
        self.batch_size = config.batch_size
        self.delay = config.delay
        self.output_file = config.output_file
        self.api_url = config.api_url

        self.config = config

        self.available: dict[str, list[Match]] = {s: [] for s in self.suffixes}
        self.interrupted = False
        self._task: asyncio.Task | None = None

    # --- State helpers --- #
    def results_to_dict(self) -> dict[str, list[dict]]:
        return {s: [match_to_dict(m) for m in ms] for s, ms in self.available.items()}

    async def save_results(self) -> None:
        """Overwrite the output file with every match recorded so far."""
        async with aiofiles.open(self.output_file, "w") as f:
            await f.write(json.dumps(self.results_to_dict(), indent=2))
        logger.info(f"Results saved to {self.output_file}")

    async def finalize(self, completed: bool = True) -> None:
        """Flush results. Shared by normal completion, signals and failures."""
        if self.interrupted:
            logger.warning("Interrupted! Saving current results...")
        elif not completed:
            logger.error("Scan aborted! Saving current results...")
        await self.save_results()
        if completed:
            logger.info("Done!")

    def record(self, result: LookupResult, suffix: str) -> Outcome:
        """Classify one result and keep it when it is a match."""
        outcome = classify(result, self.max_price)
        if outcome is Outcome.AVAILABLE:
            match = Match(result.domain, result.price)
            self.available[suffix].append(match)
            if not self.verbose:
                logger.info(f"Available: {match}")
        elif outcome is Outcome.OVER_BUDGET:
            if not self.verbose:
                logger.info(
                    f"Available but too expensive: {Match(result.domain, result.price)} "
                    f"(max: ${self.max_price:.2f})"
                )
        elif not self.verbose:
            logger.info(f"Taken: {result.domain}")
        return outcome

    def process_batch(self, batch: list[str], results: list[dict], suffix: str) -> None:
        """Match raw results to the requested domains and record them."""
        if self.verbose and results:
            logger.info(f"Received {len(results)} results for this batch")
        by_domain: dict[str, dict] = {}
        for raw in results:
            if isinstance(raw, dict) and raw.get("domain"):
                by_domain.setdefault(str(raw["domain"]).lower(), raw)
        for domain in batch:
            raw = by_domain.get(domain.lower())
            if raw is None:
                logger.debug(f"No result for {domain}")
                continue
            if self.verbose:
                logger.info(f"Domain response: {json.dumps(raw, indent=2)}")
            self.record(normalize_result(raw), suffix)

    async def scan_suffix(self, client: AvailabilityClient, suffix: str) -> None:
        """Check every combination for one suffix, one chunk at a time."""
        logger.info(f"Checking {suffix} domains...")
        progress = tqdm(total=total_combinations(self.letters), desc=suffix)
        try:
            for batch in batch_domains(generate_combos(self.letters), suffix, self.batch_size):
                results = await client.check_batch(batch)
                self.process_batch(batch, results, suffix)
                progress.update(len(batch))
                if len(batch) == self.batch_size:
                    await asyncio.sleep(self.delay)
        finally:
            progress.close()
        await self.save_results()

    async def scan(self, client: AvailabilityClient) -> None:
        for suffix in self.suffixes:
            await self.scan_suffix(client, suffix)

    def interrupt(self, signum: int | None = None) -> None:
        """Cancel the running scan so it can save and exit."""
        if signum is not None:
            logger.info(f"Received {signal.Signals(signum).name}")
        self.interrupted = True
        if self._task is not None:
            self._task.cancel()

    def _install_signal_handlers(self) -> Callable[[], None]:
        """Route SIGINT and SIGTERM to ``interrupt``; return a restore callback."""
        loop = asyncio.get_running_loop()
        installed = []
        previous = {}
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.interrupt, sig)
            except NotImplementedError:
                previous[sig] = signal.signal(
                    sig,
                    lambda signum, frame: loop.call_soon_threadsafe(self.interrupt, signum),
                )
            else:
                installed.append(sig)

        def restore() -> None:
            for sig in installed:
                loop.remove_signal_handler(sig)
            for sig, handler in previous.items():
                signal.signal(sig, handler)

        return restore

    async def run(self, client: AvailabilityClient | None = None) -> None:
        """Execute the full scan and persist the results.

        SIGINT and SIGTERM cancel the scan. The results gathered so far are
        written before this coroutine returns, even when the scan fails.
        """
        self._task = asyncio.current_task()
        restore_signals = self._install_signal_handlers()
        completed = False
        try:
            if client is None:
                async with aiohttp.ClientSession() as session:
                    client = AvailabilityClient(
                        session,
                        self.api_url,
                        self.config.api_key,
                        self.config.api_secret,
                        verbose=self.verbose,
                    )
                    await self.scan(client)
            else:
                await self.scan(client)
            completed = True
        except asyncio.CancelledError:
            if not self.interrupted:
                raise
            self._task.uncancel()
        finally:
            restore_signals()
            self._task = None
            await self.finalize(completed)


def main() -> None:
    """Entry point invoking :mod:`domain_combos.cli`."""
    from .cli import main as cli_main

    cli_main()
