"""Per-source report miners and the registry that selects them.

Callers pick a miner by source tag::

    from deckreports.mining import get_miner
    from deckreports.mining.models import Source

    miner = get_miner(Source.PROTONDB)
    data = miner.polish(miner.mine(1091500))
"""

from __future__ import annotations

from typing import Callable, Union

from deckreports.mining.base import Miner
from deckreports.mining.models import GameReportBody, MinedData, Source
from deckreports.mining.protondb import ProtondbMiner
from deckreports.mining.sharedeck import SharedeckMiner
from deckreports.mining.steamdeckhq import SteamdeckhqMiner

_REGISTRY: dict[Source, Callable[[], Miner]] = {
    Source.PROTONDB: ProtondbMiner,
    Source.SHAREDECK: SharedeckMiner,
    Source.STEAMDECKHQ: SteamdeckhqMiner,
}


def register_miner(source: Source, factory: Callable[[], Miner]) -> None:
    """Install (or replace) the factory used for *source*."""
    _REGISTRY[Source(source)] = factory


def get_miner(source: Union[Source, str]) -> Miner:
    """Return a fresh miner for *source*.

    Raises:
        ValueError: if *source* is not a known source tag.
    """
    try:
        factory = _REGISTRY[Source(source)]
    except (KeyError, ValueError):
        raise ValueError(f"Unknown report source: {source!r}") from None
    return factory()


def all_miners() -> list[Miner]:
    """One fresh miner per registered source, in source declaration order."""
    return [_REGISTRY[source]() for source in Source if source in _REGISTRY]


__all__ = [
    "Miner",
    "GameReportBody",
    "MinedData",
    "Source",
    "ProtondbMiner",
    "SharedeckMiner",
    "SteamdeckhqMiner",
    "get_miner",
    "all_miners",
    "register_miner",
]
