"""End-to-end tests for the catalog update pipeline."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Dict, List

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.sound_catalog.errors import CatalogLoadError, MissingInputError  # noqa: E402
from backend.sound_catalog.lookup import AssetLookupClient  # noqa: E402
from backend.sound_catalog.pipeline import parse_candidates, run_update  # noqa: E402


class FakeAssetApi:
    """In-memory stand-in for the asset details endpoint."""

    def __init__(self, names: Dict[str, str], statuses: Dict[str, int] | None = None) -> None:
        self.names = names
        self.statuses = statuses or {}
        self.requested: List[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        asset_id = request.url.path.split("/")[-2]
        self.requested.append(asset_id)
        if asset_id in self.statuses:
            return httpx.Response(self.statuses[asset_id])
        if asset_id not in self.names:
            return httpx.Response(404, json={"errors": [{"message": "Asset not found"}]})
        return httpx.Response(200, json={"Name": self.names[asset_id], "AssetId": int(asset_id)})


@pytest.fixture()
def api() -> FakeAssetApi:
    return FakeAssetApi({"2": "Kill Sound", "3": "Menu Click", "4": "boat horn", "5": "Phonk Beat"})


@pytest.fixture()
def client(api: FakeAssetApi) -> AssetLookupClient:
    lookup_client = AssetLookupClient(
        url_template="https://assets.test/v2/assets/{asset_id}/details",
        transport=httpx.MockTransport(api),
        base_delay_ms=1,
        sleep=lambda seconds: None,
    )
    yield lookup_client
    lookup_client.close()


def write_json(path: Path, payload: object) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture()
def catalog_path(tmp_path: Path) -> Path:
    return write_json(
        tmp_path / "sounds.json",
        {"sounds": [{"id": "1", "name": "Boat Horn", "tags": ["ui"]}]},
    )


def read_sounds(path: Path) -> list[dict]:
    return json.loads(path.read_text(encoding="utf-8"))["sounds"]


def test_example_scenario_adds_new_sound_and_skips_known_id(
    tmp_path: Path, catalog_path: Path, client: AssetLookupClient, api: FakeAssetApi
) -> None:
    """Known ids are never looked up; new ids are resolved, tagged and sorted in."""

    ids_path = write_json(tmp_path / "new_ids.json", {"ids": ["1", "2"]})

    summary = run_update(catalog_path, ids_path, client=client)

    assert api.requested == ["2"]
    assert read_sounds(catalog_path) == [
        {"id": "1", "name": "Boat Horn", "tags": ["ui"]},
        {"id": "2", "name": "Kill Sound", "tags": ["kill"]},
    ]
    assert summary.validated == 2
    assert summary.already_present == 1
    assert summary.resolved == 1
    assert summary.added == 1
    assert summary.skipped == 1
    assert summary.commit is not None and summary.commit.backup_path is not None
    assert summary.commit.backup_path.exists()


def test_run_is_idempotent(
    tmp_path: Path, catalog_path: Path, client: AssetLookupClient, api: FakeAssetApi
) -> None:
    """A second run with the same candidates adds nothing and makes no lookups."""

    ids_path = write_json(tmp_path / "new_ids.json", {"ids": [2, "3", " 5 "]})

    first = run_update(catalog_path, ids_path, client=client)
    after_first = catalog_path.read_text(encoding="utf-8")
    api.requested.clear()
    second = run_update(catalog_path, ids_path, client=client)

    assert first.added == 3
    assert second.added == 0
    assert second.already_present == 3
    assert api.requested == []
    assert catalog_path.read_text(encoding="utf-8") == after_first


def test_per_candidate_failures_do_not_abort_the_run(
    tmp_path: Path, catalog_path: Path, client: AssetLookupClient, api: FakeAssetApi
) -> None:
    """Invalid ids, failed lookups and name collisions are skipped and counted."""

    api.statuses["6"] = 503
    ids_path = write_json(
        tmp_path / "new_ids.json",
        {"ids": ["abc", -1, 1.5, None, "404", "6", "4", "3", "3"]},
    )

    summary = run_update(catalog_path, ids_path, client=client, retries=1)

    assert summary.invalid == 4
    assert summary.lookup_failed == 2
    assert summary.duplicates == 2
    assert summary.already_present == 0
    assert summary.added == 1
    assert summary.skipped == 8
    assert api.requested == ["404", "6", "6", "4", "3"]
    names = [sound["name"] for sound in read_sounds(catalog_path)]
    assert names == ["Boat Horn", "Menu Click"]


def test_output_respects_uniqueness_sort_and_tag_invariants(
    tmp_path: Path, client: AssetLookupClient
) -> None:
    """The produced catalog is unique by id and name, sorted, and fully tagged."""

    catalog_path = write_json(
        tmp_path / "sounds.json",
        [
            {"id": "10", "name": "zeta", "tags": []},
            {"id": "11", "name": "Alpha", "tags": ["ui", "ui"]},
            {"id": "10", "name": "Dup Id", "tags": ["meme"]},
        ],
    )
    ids_path = write_json(tmp_path / "new_ids.json", ["5", "2", "3"])

    run_update(catalog_path, ids_path, client=client)

    sounds = json.loads(catalog_path.read_text(encoding="utf-8"))
    assert isinstance(sounds, list)
    ids = [sound["id"] for sound in sounds]
    names = [sound["name"].casefold() for sound in sounds]
    assert len(ids) == len(set(ids))
    assert len(names) == len(set(names))
    assert names == sorted(names)
    assert all(sound["tags"] for sound in sounds)
    assert {"id": "11", "name": "Alpha", "tags": ["ui"]} in sounds
    assert {"id": "10", "name": "zeta", "tags": ["meme"]} in sounds


def test_pre_resolved_names_skip_the_lookup(
    tmp_path: Path, catalog_path: Path, client: AssetLookupClient, api: FakeAssetApi
) -> None:
    """Candidates given as {id, name} pairs are added without a remote call."""

    ids_path = write_json(
        tmp_path / "new_ids.json",
        [{"id": 77, "name": "Bonk Meme"}, {"id": "78", "name": "boat HORN"}, {"id": "2"}],
    )

    summary = run_update(catalog_path, ids_path, client=client)

    assert api.requested == ["2"]
    assert summary.added == 2
    assert summary.duplicates == 1
    assert [sound["id"] for sound in read_sounds(catalog_path)] == ["1", "77", "2"]


def test_dry_run_does_not_touch_the_catalog(
    tmp_path: Path, catalog_path: Path, client: AssetLookupClient
) -> None:
    """Dry runs render the new catalog but leave the file byte-for-byte unchanged."""

    before = catalog_path.read_bytes()
    ids_path = write_json(tmp_path / "new_ids.json", {"ids": ["2"]})

    summary = run_update(catalog_path, ids_path, client=client, dry_run=True)

    assert catalog_path.read_bytes() == before
    assert summary.commit is not None and summary.commit.written is False
    assert '"Kill Sound"' in summary.commit.rendered
    assert sorted(p.name for p in tmp_path.iterdir()) == ["new_ids.json", "sounds.json"]


def test_missing_inputs_fail_before_any_lookup(
    tmp_path: Path, catalog_path: Path, client: AssetLookupClient, api: FakeAssetApi
) -> None:
    """Absent input files abort the run without network activity."""

    with pytest.raises(MissingInputError):
        run_update(catalog_path, tmp_path / "new_ids.json", client=client)
    with pytest.raises(MissingInputError):
        run_update(tmp_path / "absent.json", catalog_path, client=client)
    assert api.requested == []


def test_unparsable_catalog_is_fatal(tmp_path: Path, client: AssetLookupClient) -> None:
    """A corrupt catalog aborts instead of being overwritten."""

    catalog_path = tmp_path / "sounds.json"
    catalog_path.write_text("{broken", encoding="utf-8")
    ids_path = write_json(tmp_path / "new_ids.json", {"ids": ["2"]})

    with pytest.raises(CatalogLoadError):
        run_update(catalog_path, ids_path, client=client)
    assert catalog_path.read_text(encoding="utf-8") == "{broken"


def test_unparsable_candidate_file_is_treated_as_empty(
    tmp_path: Path, catalog_path: Path, client: AssetLookupClient
) -> None:
    """A corrupt id list is logged and the catalog is still normalized and written."""

    ids_path = tmp_path / "new_ids.json"
    ids_path.write_text("not json", encoding="utf-8")

    summary = run_update(catalog_path, ids_path, client=client)

    assert summary.candidates == 0
    assert summary.added == 0
    assert summary.total == 1


def test_parse_candidates_shapes() -> None:
    """The id list may be wrapped, bare, or carry names."""

    assert [c.raw_id for c in parse_candidates({"ids": [1, "2"]})] == [1, "2"]
    assert parse_candidates({"other": []}) == []
    assert parse_candidates("nope") == []
    named = parse_candidates([{"id": "3", "name": "  Song  "}, {"id": "4", "name": ""}])
    assert [(c.raw_id, c.name) for c in named] == [("3", "Song"), ("4", None)]


def test_redirect_loop_counts_as_lookup_failure(tmp_path: Path, catalog_path: Path) -> None:
    """An id whose endpoint redirects to itself is skipped and later ids still resolve."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.split("/")[-2] == "6":
            return httpx.Response(302, headers={"Location": str(request.url)})
        return httpx.Response(200, json={"Name": "Kill Sound"})

    ids_path = write_json(tmp_path / "new_ids.json", {"ids": ["6", "2"]})
    with AssetLookupClient(
        url_template="https://assets.test/v2/assets/{asset_id}/details",
        transport=httpx.MockTransport(handler),
        base_delay_ms=1,
        sleep=lambda seconds: None,
    ) as lookup_client:
        summary = run_update(catalog_path, ids_path, client=lookup_client, retries=1)

    assert summary.lookup_failed == 1
    assert summary.added == 1
    assert [sound["name"] for sound in read_sounds(catalog_path)] == ["Boat Horn", "Kill Sound"]


def test_repeated_unresolvable_id_counts_as_duplicate(
    tmp_path: Path, catalog_path: Path, client: AssetLookupClient, api: FakeAssetApi
) -> None:
    """A repeat of an id that failed lookup is a duplicate, not an existing record."""

    ids_path = write_json(tmp_path / "new_ids.json", {"ids": ["404", "404"]})

    summary = run_update(catalog_path, ids_path, client=client)

    assert api.requested == ["404"]
    assert summary.lookup_failed == 1
    assert summary.duplicates == 1
    assert summary.already_present == 0
    assert summary.skipped == 2
