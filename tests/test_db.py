"""Database layer tests.

All tests use an in-memory SQLite database so they are:
- Fast (no disk I/O)
- Isolated (each fixture gets a fresh DB)
- Side-effect free (nothing written to the workspace)
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Generator
from unittest.mock import patch

import pytest

from deckreports.db.connection import get_connection
from deckreports.db.games import get_game, save_game
from deckreports.db.migrations import MIGRATIONS, current_version, init_db
from deckreports.db.queue import (
    get_queue_entry,
    next_game_to_generate,
    next_game_to_scrape,
    remove_game_from_queue,
    set_game_in_queue,
)
from deckreports.db.reports import (
    dedupe_by_hash,
    list_reports,
    replace_reports_for_game,
    replace_reports_for_source,
    save_reports_bulk,
)
from deckreports.db.scrapes import get_last_scrape, save_scrape
from deckreports.mining.models import (
    GameReportBody,
    Reporter,
    Source,
    SteamdeckHardware,
    SteamdeckRating,
)
from deckreports.scraper.models import ScrapedContent, ScrapedSection


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def conn() -> Generator[sqlite3.Connection, None, None]:
    """In-memory connection with the schema initialised."""
    connection = get_connection(db_path=":memory:")
    init_db(connection)
    yield connection
    connection.close()


def _report(
    notes: str,
    source: Source = Source.PROTONDB,
    posted_at: datetime | None = None,
    hardware: SteamdeckHardware | None = None,
) -> GameReportBody:
    return GameReportBody(
        source=source,
        url=f"https://example.com/{source.value}",
        reporter=Reporter(username="tester", user_profile_url=""),
        notes=notes,
        steamdeck_hardware=hardware,
        posted_at=posted_at,
    )


def _day(d: int) -> datetime:
    return datetime(2024, 3, d, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# connection / init
# ---------------------------------------------------------------------------

class TestInitDb:
    def test_tables_exist(self, conn: sqlite3.Connection) -> None:
        tables = {
            r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
        assert {"scrapes", "game_reports", "games", "game_queue", "schema_version"} <= tables

    def test_foreign_keys_enabled(self, conn: sqlite3.Connection) -> None:
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1

    def test_migrations_applied(self, conn: sqlite3.Connection) -> None:
        assert current_version(conn) == MIGRATIONS[-1][0]

    def test_init_db_is_idempotent(self, conn: sqlite3.Connection) -> None:
        save_game(conn, 1, game_name="Kept")
        init_db(conn)
        assert get_game(conn, 1).game_name == "Kept"
        assert current_version(conn) == MIGRATIONS[-1][0]


# ---------------------------------------------------------------------------
# scrapes
# ---------------------------------------------------------------------------

class TestScrapes:
    def _content(self, text: str) -> ScrapedContent:
        return ScrapedContent(
            title="t",
            url="https://example.com",
            sections=[ScrapedSection(id="s", other_text=[text])],
        )

    def test_save_and_load(self, conn: sqlite3.Connection) -> None:
        saved = save_scrape(conn, 10, Source.SHAREDECK, self._content("a"))
        last = get_last_scrape(conn, 10, Source.SHAREDECK)

        assert last is not None
        assert last.id == saved.id
        assert last.source is Source.SHAREDECK
        assert last.content.sections[0].other_text == ["a"]

    def test_identical_content_is_stored_once(self, conn: sqlite3.Connection) -> None:
        first = save_scrape(conn, 10, Source.PROTONDB, self._content("a"))
        second = save_scrape(conn, 10, Source.PROTONDB, self._content("a"))

        assert first.id == second.id
        count = conn.execute("SELECT COUNT(*) FROM scrapes").fetchone()[0]
        assert count == 1

    def test_last_scrape_is_most_recent(self, conn: sqlite3.Connection) -> None:
        save_scrape(conn, 10, Source.PROTONDB, self._content("old"))
        save_scrape(conn, 10, Source.PROTONDB, self._content("new"))

        last = get_last_scrape(conn, 10, Source.PROTONDB)
        assert last.content.sections[0].other_text == ["new"]

    def test_refreshed_scrape_becomes_latest_within_same_second(self, conn: sqlite3.Connection) -> None:
        with patch("deckreports.db.scrapes.time", return_value=1_700_000_000):
            save_scrape(conn, 10, Source.PROTONDB, self._content("old"))
            save_scrape(conn, 10, Source.PROTONDB, self._content("new"))
            save_scrape(conn, 10, Source.PROTONDB, self._content("old"))

        last = get_last_scrape(conn, 10, Source.PROTONDB)
        assert last.content.sections[0].other_text == ["old"]
        assert conn.execute("SELECT COUNT(*) FROM scrapes").fetchone()[0] == 2

    def test_last_scrape_missing(self, conn: sqlite3.Connection) -> None:
        save_scrape(conn, 10, Source.PROTONDB, self._content("a"))
        assert get_last_scrape(conn, 10, Source.SHAREDECK) is None
        assert get_last_scrape(conn, 11, Source.PROTONDB) is None

    def test_scrape_without_sections_round_trips(self, conn: sqlite3.Connection) -> None:
        save_scrape(conn, 10, "steamdeckhq", ScrapedContent(title="t", url="u"))
        assert get_last_scrape(conn, 10, "steamdeckhq").content.sections is None


# ---------------------------------------------------------------------------
# game reports
# ---------------------------------------------------------------------------

class TestReports:
    def test_bulk_save_and_list(self, conn: sqlite3.Connection) -> None:
        assert save_reports_bulk(conn, 1, [_report("a"), _report("b")]) == 2
        reports = list_reports(conn, 1)

        assert [r.body.notes for r in reports] == ["a", "b"]
        assert reports[0].game_id == 1
        assert reports[0].hash == _report("a").content_hash()

    def test_bulk_save_empty(self, conn: sqlite3.Connection) -> None:
        assert save_reports_bulk(conn, 1, []) == 0

    def test_list_orders_newest_first_and_undated_last(self, conn: sqlite3.Connection) -> None:
        save_reports_bulk(
            conn,
            1,
            [
                _report("undated a"),
                _report("old", posted_at=_day(1)),
                _report("undated b"),
                _report("new", posted_at=_day(9)),
            ],
        )
        assert [r.body.notes for r in list_reports(conn, 1)] == ["new", "old", "undated a", "undated b"]

    def test_list_filters_by_source(self, conn: sqlite3.Connection) -> None:
        save_reports_bulk(conn, 1, [_report("p"), _report("s", source=Source.SHAREDECK)])
        assert [r.body.notes for r in list_reports(conn, 1, Source.SHAREDECK)] == ["s"]

    def test_hardware_column_is_populated(self, conn: sqlite3.Connection) -> None:
        save_reports_bulk(conn, 1, [_report("a", hardware=SteamdeckHardware.OLED)])
        row = conn.execute("SELECT steamdeck_hardware FROM game_reports").fetchone()
        assert row[0] == "oled"

    def test_replace_for_source_is_idempotent(self, conn: sqlite3.Connection) -> None:
        batch = [_report("a"), _report("b")]
        replace_reports_for_source(conn, 1, Source.PROTONDB, batch)
        replace_reports_for_source(conn, 1, Source.PROTONDB, batch)

        assert [r.body.notes for r in list_reports(conn, 1)] == ["a", "b"]

    def test_replace_for_source_leaves_other_sources(self, conn: sqlite3.Connection) -> None:
        save_reports_bulk(conn, 1, [_report("share", source=Source.SHAREDECK)])
        replace_reports_for_source(conn, 1, Source.PROTONDB, [_report("proton")])

        assert {r.body.notes for r in list_reports(conn, 1)} == {"share", "proton"}

    def test_replace_for_source_leaves_other_games(self, conn: sqlite3.Connection) -> None:
        save_reports_bulk(conn, 2, [_report("other game")])
        replace_reports_for_source(conn, 1, Source.PROTONDB, [_report("this game")])

        assert [r.body.notes for r in list_reports(conn, 2)] == ["other game"]

    def test_replace_for_source_rejects_mixed_batch(self, conn: sqlite3.Connection) -> None:
        save_reports_bulk(conn, 1, [_report("kept")])
        with pytest.raises(ValueError):
            replace_reports_for_source(
                conn, 1, Source.PROTONDB, [_report("x", source=Source.SHAREDECK)]
            )
        assert [r.body.notes for r in list_reports(conn, 1)] == ["kept"]

    def test_replace_for_game_only_touches_sources_present(self, conn: sqlite3.Connection) -> None:
        save_reports_bulk(
            conn,
            1,
            [_report("old proton"), _report("old share", source=Source.SHAREDECK)],
        )
        written = replace_reports_for_game(conn, 1, [_report("new proton a"), _report("new proton b")])

        assert written == {Source.PROTONDB: 2}
        assert {r.body.notes for r in list_reports(conn, 1)} == {
            "new proton a",
            "new proton b",
            "old share",
        }

    def test_dedupe_keeps_earliest_row(self, conn: sqlite3.Connection) -> None:
        save_reports_bulk(conn, 1, [_report("dup"), _report("unique")])
        save_reports_bulk(conn, 1, [_report("dup")])
        save_reports_bulk(conn, 2, [_report("dup")])
        first_id = list_reports(conn, 1)[0].id

        assert dedupe_by_hash(conn) == 1
        remaining = list_reports(conn, 1)
        assert [r.body.notes for r in remaining] == ["dup", "unique"]
        assert remaining[0].id == first_id
        assert len(list_reports(conn, 2)) == 1

    def test_dedupe_without_duplicates(self, conn: sqlite3.Connection) -> None:
        save_reports_bulk(conn, 1, [_report("a")])
        assert dedupe_by_hash(conn) == 0


# ---------------------------------------------------------------------------
# games
# ---------------------------------------------------------------------------

class TestGames:
    def test_missing_game(self, conn: sqlite3.Connection) -> None:
        assert get_game(conn, 404) is None

    def test_save_creates_and_converts(self, conn: sqlite3.Connection) -> None:
        game = save_game(
            conn,
            1091500,
            game_name="Cyberpunk 2077",
            steamdeck_rating="gold",
            steamdeck_verified=True,
        )
        assert game.game_name == "Cyberpunk 2077"
        assert game.steamdeck_rating is SteamdeckRating.GOLD
        assert game.steamdeck_verified is True
        assert game.generated_at is None

    def test_partial_update_keeps_other_fields(self, conn: sqlite3.Connection) -> None:
        save_game(conn, 1, game_name="Name", steamdeck_verified=False)
        game = save_game(conn, 1, game_performance_summary="Runs well.", generated_at=100)

        assert game.game_name == "Name"
        assert game.steamdeck_verified is False
        assert game.game_performance_summary == "Runs well."
        assert game.generated_at == 100

    def test_unknown_field_rejected(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(ValueError):
            save_game(conn, 1, created_at=0)

    def test_invalid_rating_rejected(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(ValueError):
            save_game(conn, 1, steamdeck_rating="silver")

    def test_to_dict_serialises_rating(self, conn: sqlite3.Connection) -> None:
        data = save_game(conn, 1, steamdeck_rating=SteamdeckRating.PLATINUM).to_dict()
        assert data["steamdeck_rating"] == "platinum"
        assert data["game_id"] == 1


# ---------------------------------------------------------------------------
# queue
# ---------------------------------------------------------------------------

class TestQueue:
    def test_set_creates_entry_with_defaults(self, conn: sqlite3.Connection) -> None:
        entry = set_game_in_queue(conn, 1, rescrape=True)
        assert entry.rescrape is True
        assert entry.regenerate is False
        assert entry.rescrape_failed is False
        assert entry.regenerate_failed is False

    def test_update_keeps_queued_at_and_unset_flags(self, conn: sqlite3.Connection) -> None:
        first = set_game_in_queue(conn, 1, rescrape=True, regenerate=True)
        conn.execute("UPDATE game_queue SET queued_at = 5 WHERE game_id = 1")
        entry = set_game_in_queue(conn, 1, rescrape=False)

        assert entry.queued_at == 5
        assert entry.rescrape is False
        assert entry.regenerate is True
        assert first.game_id == entry.game_id

    def test_unknown_flag_rejected(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(ValueError):
            set_game_in_queue(conn, 1, urgent=True)

    def test_next_to_scrape_is_oldest_not_failed(self, conn: sqlite3.Connection) -> None:
        set_game_in_queue(conn, 1, rescrape=True, rescrape_failed=True)
        set_game_in_queue(conn, 2, rescrape=True)
        set_game_in_queue(conn, 3, rescrape=True)
        conn.execute("UPDATE game_queue SET queued_at = 20 WHERE game_id = 2")
        conn.execute("UPDATE game_queue SET queued_at = 10 WHERE game_id = 3")

        assert next_game_to_scrape(conn).game_id == 3

    def test_next_to_generate_waits_for_scrape(self, conn: sqlite3.Connection) -> None:
        set_game_in_queue(conn, 1, rescrape=True, regenerate=True)
        assert next_game_to_generate(conn) is None

        set_game_in_queue(conn, 1, rescrape=False)
        assert next_game_to_generate(conn).game_id == 1

    def test_next_to_generate_skips_failed(self, conn: sqlite3.Connection) -> None:
        set_game_in_queue(conn, 1, regenerate=True, regenerate_failed=True)
        assert next_game_to_generate(conn) is None

    def test_empty_queue(self, conn: sqlite3.Connection) -> None:
        assert next_game_to_scrape(conn) is None
        assert next_game_to_generate(conn) is None

    def test_remove(self, conn: sqlite3.Connection) -> None:
        set_game_in_queue(conn, 1, rescrape=True)
        remove_game_from_queue(conn, 1)
        remove_game_from_queue(conn, 1)
        assert get_queue_entry(conn, 1) is None
