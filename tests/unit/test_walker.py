"""Unit tests for source file discovery."""

from pathlib import Path

import pytest

from repograph.core.models import ParseOptions
from repograph.core.walker import discover_files, is_test_file, matches_glob, to_relative
from repograph.languages.php import RULES as PHP_RULES
from repograph.languages.ruby import RULES as RUBY_RULES
from repograph.languages.typescript import RULES as TS_RULES


def touch(root: Path, *paths: str) -> None:
    """Create empty files below root."""
    for rel in paths:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("")


def discovered(root: Path, rules, **options) -> list[str]:
    return [to_relative(root, f) for f in discover_files(root, rules, ParseOptions(**options))]


class TestMatchesGlob:
    """Tests for exclude pattern matching."""

    @pytest.mark.parametrize(
        ("path", "pattern", "expected"),
        [
            ("src/generated/api.ts", "src/generated/*", True),
            ("src/generated/api.ts", "**/generated/*", True),
            ("src/fixtures/a.ts", "fixtures", True),
            ("src/a.ts", "*.ts", True),
            ("src/a.ts", "lib/*", False),
            ("src/a.ts", "fixtures", False),
        ],
    )
    def test_patterns(self, path: str, pattern: str, expected: bool) -> None:
        assert matches_glob(path, pattern) is expected


class TestTypeScriptDiscovery:
    """Tests for TypeScript file discovery."""

    def test_sorted_sources_only(self, tmp_path: Path) -> None:
        touch(tmp_path, "src/b.ts", "src/a.tsx", "index.js", "README.md", "types.d.ts")

        assert discovered(tmp_path, TS_RULES) == ["index.js", "src/a.tsx", "src/b.ts"]

    def test_default_excludes(self, tmp_path: Path) -> None:
        """Test that dependency, build and hidden directories are skipped."""
        touch(
            tmp_path,
            "src/a.ts",
            "node_modules/pkg/index.js",
            "dist/a.js",
            "build/b.js",
            "coverage/c.js",
            ".cache/d.ts",
        )

        assert discovered(tmp_path, TS_RULES) == ["src/a.ts"]

    def test_include_node_modules(self, tmp_path: Path) -> None:
        touch(tmp_path, "src/a.ts", "node_modules/pkg/index.js")

        assert discovered(tmp_path, TS_RULES, include_node_modules=True) == [
            "node_modules/pkg/index.js",
            "src/a.ts",
        ]

    def test_tests_excluded_by_default(self, tmp_path: Path) -> None:
        touch(tmp_path, "src/a.ts", "src/a.test.ts", "src/a.spec.tsx", "__tests__/b.ts")

        assert discovered(tmp_path, TS_RULES) == ["src/a.ts"]
        assert len(discovered(tmp_path, TS_RULES, include_tests=True)) == 4

    def test_max_depth(self, tmp_path: Path) -> None:
        touch(tmp_path, "a.ts", "one/b.ts", "one/two/c.ts")

        assert discovered(tmp_path, TS_RULES, max_depth=1) == ["a.ts", "one/b.ts"]
        assert discovered(tmp_path, TS_RULES, max_depth=0) == ["a.ts"]

    def test_exclude_patterns(self, tmp_path: Path) -> None:
        touch(tmp_path, "src/a.ts", "src/generated/api.ts", "legacy/old.js")

        result = discovered(
            tmp_path, TS_RULES, exclude_patterns=("src/generated", "*.js")
        )

        assert result == ["src/a.ts"]


class TestSubprocessDiscovery:
    """Tests for PHP and Ruby discovery rules."""

    def test_php_rules(self, tmp_path: Path) -> None:
        touch(
            tmp_path,
            "app/Models/User.php",
            "vendor/laravel/framework/Model.php",
            "storage/cache.php",
            "tests/Feature/UserTest.php",
            "app/UserTest.php",
        )

        assert discovered(tmp_path, PHP_RULES) == ["app/Models/User.php"]

    def test_ruby_rules(self, tmp_path: Path) -> None:
        touch(
            tmp_path,
            "app/models/user.rb",
            "lib/tasks.rb",
            "spec/models/user_spec.rb",
            "config/routes.rb",
            "vendor/bundle/gem.rb",
            "db/schema.rb",
        )

        assert discovered(tmp_path, RUBY_RULES) == ["app/models/user.rb", "lib/tasks.rb"]

    def test_is_test_file(self) -> None:
        assert is_test_file("app/user_spec.rb", RUBY_RULES)
        assert is_test_file("test/user.rb", RUBY_RULES)
        assert not is_test_file("app/user.rb", RUBY_RULES)
