"""Integration tests for replaying a change set into git."""

from datetime import datetime, timezone
from unittest.mock import Mock, call

from shopctl.models import Theme
from shopctl.sync import ChangeKey, ChangeSet, ResourceKind, SyncOptions, SyncReport, replay
from shopctl.sync.history import themes_for_bucket


def make_registry():
    registry = Mock()
    registry.assets.pull.side_effect = lambda options: SyncReport("assets")
    registry.get.side_effect = lambda kind: Mock(pull=Mock(return_value=SyncReport(kind.value)))
    registry.pull.return_value = [SyncReport("assets")]
    return registry


class TestReplay:
    """Test cases for replaying history."""

    def test_commit_per_bucket_then_current_state(self, tmp_path):
        target = Theme(id=1, name="Dawn", created_at="2021-01-01T00:00:00Z")
        change_set = ChangeSet()
        change_set.add("2021-02-01T00:00:00Z", ChangeKey("layout/theme.liquid", 1, "dawn", 1))
        change_set.add("2021-03-01T00:00:00Z", ChangeKey("layout/theme.liquid", 1, "dawn", 2))
        registry = make_registry()
        git = Mock()

        replay(registry, change_set, target, SyncOptions(output_dir=tmp_path, dry_run=True), git, ["assets"])

        pulled = [c.args[0] for c in registry.assets.pull.call_args_list]
        assert [o.theme for o in pulled] == ["1", "1"]
        assert [o.created_before for o in pulled] == [
            datetime(2021, 2, 1, tzinfo=timezone.utc),
            datetime(2021, 3, 1, tzinfo=timezone.utc),
        ]
        assert all(o.dry_run is False for o in pulled)

        commits = git.commit_all.call_args_list
        assert commits[:2] == [
            call("Sync with Shopify @ 2021-02-01T00:00:00.000Z", commit_date="2021-02-01T00:00:00.000Z"),
            call("Sync with Shopify @ 2021-03-01T00:00:00.000Z", commit_date="2021-03-01T00:00:00.000Z"),
        ]
        assert len(commits) == 3
        final_kinds, final_options = registry.pull.call_args[0]
        assert final_kinds == [ResourceKind.ASSETS]
        assert final_options.created_before is None

    def test_content_kinds_pull_without_redirects(self, tmp_path):
        target = Theme(id=1, name="Dawn")
        change_set = ChangeSet()
        change_set.add("2021-02-01T00:00:00Z", ChangeKey("pages/about.html"))
        registry = make_registry()

        reports = replay(registry, change_set, target, SyncOptions(output_dir=tmp_path), Mock(), ["pages", "redirects"])

        assert [c.args[0] for c in registry.get.call_args_list] == [ResourceKind.PAGES]
        registry.assets.pull.assert_not_called()
        assert [r.kind for r in reports] == ["pages", "assets"]

    def test_themes_for_bucket(self):
        target = Theme(id=1, name="Dawn", created_at="2021-06-01T00:00:00Z")
        early = ChangeSet()
        early.add("2021-01-01T00:00:00Z", ChangeKey("a", 2, "old_dawn"))
        early.add("2021-01-01T00:00:00Z", ChangeKey("b", 1, "dawn"))
        late = ChangeSet()
        late.add("2021-07-01T00:00:00Z", ChangeKey("a", 2, "old_dawn"))
        late.add("2021-07-01T00:00:00Z", ChangeKey("b", 1, "dawn"))

        assert themes_for_bucket(next(iter(early)), target) == [2, 1]
        assert themes_for_bucket(next(iter(late)), target) == [1]
