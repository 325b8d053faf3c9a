"""Tests for the classification engine."""

import threading
from unittest.mock import MagicMock, patch

import pytest

from gendetect.core.identity import FileIdentity, WorkspaceRoots
from gendetect.detection.engine import Classification, ClassificationEngine, MatchKind
from gendetect.detection.oracle import MetadataOracle
from gendetect.detection.scanner import ContentScanner
from gendetect.rules.ruleset import RuleSet


def _completed(stdout: str) -> MagicMock:
    result = MagicMock()
    result.stdout = stdout
    result.returncode = 0
    return result


@pytest.fixture
def oracle():
    mock = MagicMock(spec=MetadataOracle)
    mock.has_truthy.return_value = None
    mock.queries = 0
    return mock


@pytest.fixture
def project(temp_dir):
    root = temp_dir / "work"
    root.mkdir()
    return root


def _write(root, name, content):
    path = root / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return FileIdentity.from_path(path)


class TestScenarios:
    """End-to-end classification scenarios."""

    def test_content_marker_within_bounds(self, project):
        """Scenario A: marker on the first line is found."""
        identity = _write(project, "gen.ts", "// @generated\nconst x = 1;")
        rules = RuleSet.from_config({"regexPatterns": ["@generated"], "maxSearchChars": 1024, "maxSearchLines": 5})
        engine = ClassificationEngine(rules, WorkspaceRoots([project]))

        assert engine.classify(identity) is True

    def test_content_marker_truncated_away(self, project):
        """Scenario B: marker on line 3 is outside a 2-line window."""
        identity = _write(project, "gen.ts", "line1\nline2\n@generated on line 3")
        rules = RuleSet.from_config({"regexPatterns": ["@generated"], "maxSearchChars": 1024, "maxSearchLines": 2})
        engine = ClassificationEngine(rules, WorkspaceRoots([project]))

        assert engine.classify(identity) is False

    @patch("gendetect.detection.oracle.subprocess.run")
    def test_attribute_set_and_unset(self, mock_run):
        """Scenario C: set is generated; unset with no content rules is not."""
        rules = RuleSet.from_config({"gitAttributes": ["generated"]})
        identity = FileIdentity.from_path("/p/file.ts")

        mock_run.return_value = _completed("/p/file.ts: generated: set\n")
        assert ClassificationEngine(rules, WorkspaceRoots(["/p"])).classify(identity) is True

        mock_run.return_value = _completed("/p/file.ts: generated: unset\n")
        assert ClassificationEngine(rules, WorkspaceRoots(["/p"])).classify(identity) is False

    def test_exclusion_beats_attribute(self, oracle):
        """Scenario D: an excluded path is never generated."""
        oracle.has_truthy.return_value = "generated"
        rules = RuleSet.from_config({"excludePatterns": ["*.test.ts"], "gitAttributes": ["generated"]})
        engine = ClassificationEngine(rules, WorkspaceRoots(["/p"]), oracle=oracle)

        assert engine.classify(FileIdentity.from_path("/p/gen.test.ts")) is False
        oracle.has_truthy.assert_not_called()

    def test_generated_files_relative_to_root(self, oracle):
        """Scenario E: root-relative inside a root, absolute outside."""
        oracle.has_truthy.return_value = "generated"
        rules = RuleSet.from_config({"gitAttributes": ["generated"]})
        engine = ClassificationEngine(rules, WorkspaceRoots(["/work"]), oracle=oracle)

        engine.classify(FileIdentity.from_path("/work/gen.ts"))
        engine.classify(FileIdentity.from_path("/outside/gen.ts"))

        assert engine.get_generated_files() == ["gen.ts", "/outside/gen.ts"]


class TestClassifyProperties:
    """Caching, precedence and skip behaviour."""

    def test_idempotent_and_cached(self, oracle):
        """Repeated calls return the same answer without querying again."""
        oracle.has_truthy.return_value = "generated"
        scanner = MagicMock(spec=ContentScanner)
        rules = RuleSet.from_config({"gitAttributes": ["generated"], "regexPatterns": ["x"]})
        engine = ClassificationEngine(rules, WorkspaceRoots(["/p"]), oracle=oracle, scanner=scanner)
        identity = FileIdentity.from_path("/p/a.ts")

        results = [engine.classify(identity) for _ in range(3)]

        assert results == [True, True, True]
        oracle.has_truthy.assert_called_once()
        scanner.matches.assert_not_called()

    def test_negative_verdict_cached(self, oracle):
        scanner = MagicMock(spec=ContentScanner)
        scanner.matches.return_value = None
        rules = RuleSet.from_config({"gitAttributes": ["generated"], "regexPatterns": ["x"]})
        engine = ClassificationEngine(rules, WorkspaceRoots(["/p"]), oracle=oracle, scanner=scanner)
        identity = FileIdentity.from_path("/p/a.ts")

        assert engine.classify(identity) is False
        assert engine.classify(identity) is False
        assert engine.cached(identity) is False
        scanner.matches.assert_called_once()

    def test_attribute_checked_before_content(self, oracle):
        oracle.has_truthy.return_value = "linguist-generated"
        scanner = MagicMock(spec=ContentScanner)
        rules = RuleSet.from_config({"gitAttributes": ["linguist-generated"], "regexPatterns": ["x"]})
        engine = ClassificationEngine(rules, WorkspaceRoots(["/p"]), oracle=oracle, scanner=scanner)

        identity = FileIdentity.from_path("/p/a.ts")
        result = engine.explain(identity)

        assert result == Classification(identity, True, MatchKind.ATTRIBUTE, "linguist-generated")
        scanner.matches.assert_not_called()

    def test_oracle_uses_root_as_cwd(self, oracle):
        rules = RuleSet.from_config({"gitAttributes": ["generated"]})
        engine = ClassificationEngine(rules, WorkspaceRoots(["/p"]), oracle=oracle)

        engine.classify(FileIdentity.from_path("/p/src/a.ts"))

        oracle.has_truthy.assert_called_once_with(FileIdentity.from_path("/p/src/a.ts"), ("generated",), "/p")

    def test_empty_rules_skip_every_check(self, oracle):
        """No attribute names and no patterns: nothing is queried or read."""
        scanner = MagicMock(spec=ContentScanner)
        engine = ClassificationEngine(RuleSet(), WorkspaceRoots(["/p"]), oracle=oracle, scanner=scanner)

        assert engine.classify(FileIdentity.from_path("/p/a.ts")) is False
        oracle.has_truthy.assert_not_called()
        scanner.matches.assert_not_called()

    def test_non_file_scheme_skips_attributes(self, oracle):
        scanner = ContentScanner()
        scanner.register_reader("untitled", lambda identity: b"// @generated\n")
        rules = RuleSet.from_config({"gitAttributes": ["generated"], "regexPatterns": ["@generated"]})
        engine = ClassificationEngine(rules, oracle=oracle, scanner=scanner)

        result = engine.explain(FileIdentity("untitled", "Untitled-1"))

        assert result.is_generated
        assert result.kind == MatchKind.CONTENT
        oracle.has_truthy.assert_not_called()

    def test_exclusion_checked_before_cache(self, oracle):
        """An exclusion added by reload wins over a stale cached True."""
        oracle.has_truthy.return_value = "generated"
        engine = ClassificationEngine(
            RuleSet.from_config({"gitAttributes": ["generated"]}), WorkspaceRoots(["/p"]), oracle=oracle
        )
        identity = FileIdentity.from_path("/p/docs/a.md")
        engine.classify(identity)

        # Swap rules without clearing the cache
        engine._rules = RuleSet.from_config({"gitAttributes": ["generated"], "excludePatterns": ["docs/*"]})

        assert engine.classify(identity) is False

    def test_explain_excluded(self):
        engine = ClassificationEngine(RuleSet.from_config({"excludePatterns": ["*.md"]}), WorkspaceRoots(["/p"]))
        result = engine.explain(FileIdentity.from_path("/p/README.md"))
        assert result.kind == MatchKind.EXCLUDED
        assert result.describe() == "excluded: *.md"

    def test_describe_no_match(self):
        assert Classification(FileIdentity.from_path("/p/a"), False).describe() == "no rule matched"


class TestInvalidationAndReload:
    """Tests for invalidate, invalidate_all and reload."""

    def test_invalidate_forces_recompute(self, project):
        identity = _write(project, "a.ts", "// @generated\n")
        engine = ClassificationEngine(RuleSet.from_config({"regexPatterns": ["@generated"]}), WorkspaceRoots([project]))
        assert engine.classify(identity) is True

        (project / "a.ts").write_text("hand written\n")
        assert engine.classify(identity) is True  # still cached

        assert engine.invalidate(identity) is True
        assert engine.classify(identity) is False

    def test_reload_recomputes_previous_true(self, project):
        """A True cached under old rules recomputes to False under new rules."""
        identity = _write(project, "a.ts", "// @generated\n")
        engine = ClassificationEngine(RuleSet.from_config({"regexPatterns": ["@generated"]}), WorkspaceRoots([project]))
        assert engine.classify(identity) is True

        engine.reload(RuleSet.from_config({"regexPatterns": ["DO NOT EDIT"]}))

        assert engine.cached(identity) is None
        assert engine.classify(identity) is False
        assert engine.get_generated_files() == []

    def test_invalidate_all(self, project):
        identity = _write(project, "a.ts", "// @generated\n")
        engine = ClassificationEngine(RuleSet.from_config({"regexPatterns": ["@generated"]}), WorkspaceRoots([project]))
        engine.classify(identity)

        assert engine.invalidate_all() == 1
        assert engine.cached(identity) is None

    def test_verdict_from_replaced_rules_not_stored(self, oracle):
        """A classification that overlaps a reload does not cache its verdict."""
        engine = ClassificationEngine(
            RuleSet.from_config({"gitAttributes": ["generated"]}), WorkspaceRoots(["/p"]), oracle=oracle
        )

        def reload_during_query(*args):
            engine.reload(RuleSet())
            return "generated"

        oracle.has_truthy.side_effect = reload_during_query
        identity = FileIdentity.from_path("/p/a.ts")

        assert engine.classify(identity) is True
        assert engine.cached(identity) is None

    def test_rules_property(self):
        rules = RuleSet.from_config({"regexPatterns": ["x"]})
        engine = ClassificationEngine(rules)
        assert engine.rules is rules
        new_rules = RuleSet()
        engine.reload(new_rules)
        assert engine.rules is new_rules


class TestGeneratedSignal:
    """Tests for the on_generated hook."""

    def test_called_once_for_fresh_true(self, oracle):
        oracle.has_truthy.return_value = "generated"
        listener = MagicMock()
        engine = ClassificationEngine(
            RuleSet.from_config({"gitAttributes": ["generated"]}),
            WorkspaceRoots(["/p"]),
            oracle=oracle,
            on_generated=listener,
        )
        identity = FileIdentity.from_path("/p/a.ts")

        engine.classify(identity)
        engine.classify(identity)

        listener.assert_called_once_with(identity)

    def test_not_called_for_false(self, oracle):
        listener = MagicMock()
        engine = ClassificationEngine(
            RuleSet.from_config({"gitAttributes": ["generated"]}), oracle=oracle, on_generated=listener
        )
        engine.classify(FileIdentity.from_path("/p/a.ts"))
        listener.assert_not_called()

    def test_listener_errors_contained(self, oracle):
        oracle.has_truthy.return_value = "generated"
        engine = ClassificationEngine(
            RuleSet.from_config({"gitAttributes": ["generated"]}),
            oracle=oracle,
            on_generated=MagicMock(side_effect=RuntimeError("boom")),
        )
        assert engine.classify(FileIdentity.from_path("/p/a.ts")) is True


class TestConcurrency:
    """Concurrent classification and reload."""

    def test_parallel_classify_and_reload(self, project):
        identities = [_write(project, f"f{i}.ts", "// @generated\n" if i % 2 else "plain\n") for i in range(20)]
        engine = ClassificationEngine(RuleSet.from_config({"regexPatterns": ["@generated"]}), WorkspaceRoots([project]))
        errors = []

        def classify_all():
            try:
                for identity in identities:
                    assert isinstance(engine.classify(identity), bool)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=classify_all) for _ in range(4)]
        for t in threads:
            t.start()
        engine.reload(RuleSet.from_config({"regexPatterns": ["@generated"]}))
        for t in threads:
            t.join()

        assert errors == []
        # After everything settles, a fresh pass gives the true answer
        engine.invalidate_all()
        assert sorted(engine.get_generated_files()) == []
        for identity in identities:
            engine.classify(identity)
        assert len(engine.get_generated_files()) == 10

    def test_stats(self, oracle):
        engine = ClassificationEngine(RuleSet(), oracle=oracle)
        engine.classify(FileIdentity.from_path("/p/a.ts"))
        stats = engine.get_stats()
        assert stats["entries"] == 1
        assert stats["attribute_queries"] == 0
        assert stats["content_scans"] == 0
