import asyncio
import json
import sys
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from activitysync.app.config import ActivitiesConfig, ConfigError  # noqa: E402
from activitysync.domain.projection import build_pick_policy  # noqa: E402
from activitysync.infrastructure.http import ACTIVITY_SEARCH_URL  # noqa: E402
from activitysync.services.sync import ActivitySync, RemoteResponseError  # noqa: E402

DETAILS_URL = "https://example.com/activity/{activityId}/details"


class FakeFetcher:
    """Serves search pages keyed by ``start`` and detail documents keyed by URL."""

    def __init__(self, pages=None, details=None, fail_on=None):
        self.pages = pages or {}
        self.details = details or {}
        self.fail_on = fail_on
        self.calls: list[tuple[str, str]] = []

    async def fetch_json(self, url: str, hint: str = ""):
        self.calls.append((url, hint))
        await asyncio.sleep(0)
        if self.fail_on is not None and url == self.fail_on:
            raise RuntimeError(f"fetch failed: {url}")
        parts = urlsplit(url)
        if url.startswith(ACTIVITY_SEARCH_URL):
            query = parse_qs(parts.query)
            return self.pages.get(int(query["start"][0]), [])
        return self.details[url]

    @property
    def search_queries(self) -> list[dict[str, list[str]]]:
        return [
            parse_qs(urlsplit(url).query)
            for url, _ in self.calls
            if url.startswith(ACTIVITY_SEARCH_URL)
        ]


def _ids(activities):
    return [activity["activityId"] for activity in activities]


def _activities_config(tmp_path: Path, **search) -> ActivitiesConfig:
    return ActivitiesConfig.model_validate(
        {
            "search": {"path": "{baseDir}/activities.json", **search},
            "fetch": [
                {
                    "url": DETAILS_URL,
                    "path": "{baseDir}/details/{activityId}.json",
                    "title": "details",
                    "pick": ["summary.distance as distance"],
                }
            ],
        }
    )


def _details_for(*activity_ids: int) -> dict[str, dict]:
    return {
        DETAILS_URL.format(activityId=activity_id): {
            "summary": {"distance": activity_id * 1000.0, "calories": 1}
        }
        for activity_id in activity_ids
    }


def test_stops_at_high_water_mark() -> None:
    fetcher = FakeFetcher(
        pages={0: [{"activityId": 7}, {"activityId": 6}, {"activityId": 5}, {"activityId": 4}]}
    )
    engine = ActivitySync(fetcher)
    old = [{"activityId": 5}, {"activityId": 4}]

    new = asyncio.run(engine.update_activities({}, old))

    assert new == [{"activityId": 7}, {"activityId": 6}]
    assert len(fetcher.calls) == 1


def test_empty_first_page_yields_nothing() -> None:
    fetcher = FakeFetcher(pages={})
    engine = ActivitySync(fetcher)

    assert asyncio.run(engine.update_activities({}, [])) == []
    assert len(fetcher.calls) == 1


def test_pages_until_empty_page() -> None:
    fetcher = FakeFetcher(
        pages={
            0: [{"activityId": 9}, {"activityId": 8}],
            2: [{"activityId": 7}, {"activityId": 6}],
        }
    )
    engine = ActivitySync(fetcher)

    new = asyncio.run(engine.update_activities({"limit": 2}, []))

    assert _ids(new) == [9, 8, 7, 6]
    assert [query["start"] for query in fetcher.search_queries] == [["0"], ["2"], ["4"]]
    assert all(query["limit"] == ["2"] for query in fetcher.search_queries)


def test_high_water_mark_on_later_page() -> None:
    fetcher = FakeFetcher(
        pages={
            0: [{"activityId": 9}, {"activityId": 8}],
            2: [{"activityId": 7}, {"activityId": 6}],
            4: [{"activityId": 5}],
        }
    )
    engine = ActivitySync(fetcher)

    new = asyncio.run(engine.update_activities({"limit": 2}, [{"activityId": 6}]))

    assert _ids(new) == [9, 8, 7]
    assert len(fetcher.calls) == 2


def test_finish_bounds_pagination() -> None:
    pages = {start: [{"activityId": 100 - start}] for start in range(0, 20, 2)}
    fetcher = FakeFetcher(pages=pages)
    engine = ActivitySync(fetcher)

    new = asyncio.run(engine.update_activities({"limit": 2}, [], finish=4))

    assert _ids(new) == [100, 98]
    assert len(fetcher.calls) == 2


def test_finish_at_or_before_start_fetches_nothing() -> None:
    fetcher = FakeFetcher(pages={5: [{"activityId": 1}]})
    engine = ActivitySync(fetcher)

    assert asyncio.run(engine.update_activities({"start": 5}, [], finish=5)) == []
    assert fetcher.calls == []


def test_parameters_are_forwarded() -> None:
    fetcher = FakeFetcher(pages={})
    engine = ActivitySync(fetcher)

    asyncio.run(engine.update_activities({"activityType": "running", "start": 0, "limit": 10}, []))

    (query,) = fetcher.search_queries
    assert query["activityType"] == ["running"]
    assert query["limit"] == ["10"]


def test_new_activities_are_projected() -> None:
    fetcher = FakeFetcher(
        pages={0: [{"activityId": 2, "name": "Run", "extra": 1}, {"activityId": 1, "name": "Ride"}]}
    )
    engine = ActivitySync(fetcher)
    pick = build_pick_policy(["name"], required=("activityId",))

    new = asyncio.run(engine.update_activities({}, [{"activityId": 1}], pick))

    assert new == [{"activityId": 2, "name": "Run"}]


def test_non_list_page_is_rejected() -> None:
    fetcher = FakeFetcher(pages={0: {"error": "unauthorized"}})
    engine = ActivitySync(fetcher)

    with pytest.raises(RemoteResponseError):
        asyncio.run(engine.update_activities({}, []))


def test_limit_must_be_positive() -> None:
    engine = ActivitySync(FakeFetcher())

    with pytest.raises(ValueError):
        asyncio.run(engine.update_activities({"limit": 0}, []))


def test_update_all_writes_summary_and_details(tmp_path: Path) -> None:
    summary_path = tmp_path / "activities.json"
    summary_path.write_text(json.dumps([{"activityId": 5}, {"activityId": 4}]), encoding="utf-8")
    fetcher = FakeFetcher(
        pages={0: [{"activityId": 7}, {"activityId": 6}, {"activityId": 5}]},
        details=_details_for(7, 6),
    )
    engine = ActivitySync(fetcher)

    result = asyncio.run(
        engine.update_all(_activities_config(tmp_path), {"baseDir": str(tmp_path)})
    )

    assert _ids(result.new_activities) == [7, 6]
    assert result.summary_written
    assert result.summary_path == summary_path
    assert _ids(json.loads(summary_path.read_text(encoding="utf-8"))) == [7, 6, 5, 4]

    details_dir = tmp_path / "details"
    assert sorted(result.detail_paths) == sorted([details_dir / "7.json", details_dir / "6.json"])
    assert json.loads((details_dir / "7.json").read_text(encoding="utf-8")) == {"distance": 7000.0}

    hints = sorted(hint for url, hint in fetcher.calls if not url.startswith(ACTIVITY_SEARCH_URL))
    assert hints == ["(1 of 2)", "(2 of 2)"]


def test_single_new_activity_has_no_hint(tmp_path: Path) -> None:
    fetcher = FakeFetcher(pages={0: [{"activityId": 3}]}, details=_details_for(3))
    engine = ActivitySync(fetcher)

    asyncio.run(engine.update_all(_activities_config(tmp_path), {"baseDir": str(tmp_path)}))

    assert fetcher.calls[-1] == (DETAILS_URL.format(activityId=3), "")


def test_second_run_is_idempotent(tmp_path: Path) -> None:
    pages = {0: [{"activityId": 7}, {"activityId": 6}]}
    config = _activities_config(tmp_path)
    env = {"baseDir": str(tmp_path)}

    asyncio.run(ActivitySync(FakeFetcher(pages=pages, details=_details_for(7, 6))).update_all(config, env))
    summary_path = tmp_path / "activities.json"
    before = summary_path.read_bytes()

    fetcher = FakeFetcher(pages=pages)
    result = asyncio.run(ActivitySync(fetcher).update_all(config, env))

    assert result.new_activities == []
    assert not result.summary_written
    assert result.detail_paths == []
    assert summary_path.read_bytes() == before
    assert len(fetcher.calls) == 1


def test_nothing_new_skips_persistence(tmp_path: Path) -> None:
    fetcher = FakeFetcher(pages={})
    engine = ActivitySync(fetcher)

    result = asyncio.run(
        engine.update_all(_activities_config(tmp_path), {"baseDir": str(tmp_path)})
    )

    assert result.new_activities == []
    assert not (tmp_path / "activities.json").exists()
    assert not (tmp_path / "details").exists()


def test_without_fetch_descriptors_only_summary_is_written(tmp_path: Path) -> None:
    config = ActivitiesConfig.model_validate(
        {"search": {"path": "{baseDir}/{activityType}.json", "parameters": {"activityType": "running"}}}
    )
    fetcher = FakeFetcher(pages={0: [{"activityId": 1}]})

    result = asyncio.run(ActivitySync(fetcher).update_all(config, {"baseDir": str(tmp_path)}))

    assert result.summary_path == tmp_path / "running.json"
    assert result.detail_paths == []
    assert len(fetcher.calls) == 2


def test_detail_failure_fails_the_cycle(tmp_path: Path) -> None:
    fetcher = FakeFetcher(
        pages={0: [{"activityId": 7}, {"activityId": 6}]},
        details=_details_for(7, 6),
        fail_on=DETAILS_URL.format(activityId=6),
    )
    engine = ActivitySync(fetcher)

    with pytest.raises(RuntimeError, match="fetch failed"):
        asyncio.run(
            engine.update_all(_activities_config(tmp_path), {"baseDir": str(tmp_path)})
        )


def test_invalid_stored_state_is_rejected(tmp_path: Path) -> None:
    (tmp_path / "activities.json").write_text(json.dumps([{"name": "no id"}]), encoding="utf-8")
    fetcher = FakeFetcher(pages={0: [{"activityId": 1}]})

    with pytest.raises(ConfigError):
        asyncio.run(
            ActivitySync(fetcher).update_all(
                _activities_config(tmp_path), {"baseDir": str(tmp_path)}
            )
        )
    assert fetcher.calls == []


def test_array_detail_documents_are_written_unchanged(tmp_path: Path) -> None:
    zones_url = "https://example.com/activity/{activityId}/hrTimeInZones"
    config = ActivitiesConfig.model_validate(
        {
            "search": {"path": "{baseDir}/activities.json"},
            "fetch": [{"url": zones_url, "path": "{baseDir}/zones/{activityId}.json"}],
        }
    )
    zones = [{"zoneNumber": 1, "secsInZone": 10, "zoneLowBoundary": 90}]
    fetcher = FakeFetcher(
        pages={0: [{"activityId": 3}]},
        details={zones_url.format(activityId=3): zones},
    )

    result = asyncio.run(
        ActivitySync(fetcher).update_all(config, {"baseDir": str(tmp_path)}, "notNull")
    )

    assert result.detail_paths == [tmp_path / "zones" / "3.json"]
    assert json.loads((tmp_path / "zones" / "3.json").read_text(encoding="utf-8")) == zones
