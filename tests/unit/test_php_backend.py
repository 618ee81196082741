"""Unit tests for PHP extraction results and resolution."""

from pathlib import Path

import pytest

from repograph import config
from repograph.core.builder import GraphBuilder
from repograph.core.models import EdgeKind, Language, NodeKind, ParseOptions
from repograph.languages import php
from repograph.languages.php import PhpBackend
from repograph.languages.process_pool import ProcessOutcome


def declaration(kind: str, name: str, namespace: str | None, **extra) -> dict:
    return {
        "kind": kind,
        "name": name,
        "namespace": namespace,
        "line": extra.pop("line", 5),
        "endLine": extra.pop("endLine", 20),
        "extends": extra.pop("extends", []),
        "implements": extra.pop("implements", []),
        "traits": extra.pop("traits", []),
    }


ENTRIES = {
    "app/Models/Model.php": {
        "declarations": [declaration("class", "Model", "App\\Models")],
        "uses": [],
    },
    "app/Models/User.php": {
        "declarations": [
            declaration(
                "class",
                "User",
                "App\\Models",
                extends=["App\\Models\\Model"],
                implements=["App\\Contracts\\Authenticatable", "JsonSerializable"],
                traits=[{"name": "App\\Concerns\\HasRoles", "line": 9}],
            )
        ],
        "uses": [
            {"name": "App\\Contracts\\Authenticatable", "line": 3},
            {"name": "Illuminate\\Support\\Str", "line": 4},
        ],
    },
    "app/Contracts/Authenticatable.php": {
        "declarations": [declaration("interface", "Authenticatable", "App\\Contracts")],
        "uses": [],
    },
    "app/Concerns/HasRoles.php": {
        "declarations": [declaration("trait", "HasRoles", "App\\Concerns")],
        "uses": [],
    },
    "app/Status.php": {
        "declarations": [declaration("enum", "Status", "App")],
        "uses": [],
    },
}


@pytest.fixture
def schema(tmp_path: Path):
    """Assemble a schema from canned extractor output."""
    backend = PhpBackend()
    extractions = [
        backend.read_entry(tmp_path / rel, rel, {"path": str(tmp_path / rel), "ok": True, **entry})
        for rel, entry in sorted(ENTRIES.items())
    ]
    builder = GraphBuilder(str(tmp_path), Language.PHP)
    backend.assemble(builder, tmp_path, extractions, ParseOptions())
    return builder.build()


def edges_from(schema, source: str) -> dict[tuple[EdgeKind, str], bool]:
    return {(e.kind, e.target): e.resolved for e in schema.edges if e.source == source}


class TestPhpNodes:
    """Tests for PHP node emission."""

    def test_class_like_kinds(self, schema) -> None:
        kinds = {n.id: n.kind for n in schema.nodes}

        assert kinds["app/Models/User.php"] == NodeKind.FILE
        assert kinds["app/Models/User.php#User"] == NodeKind.CLASS
        assert kinds["app/Contracts/Authenticatable.php#Authenticatable"] == NodeKind.INTERFACE
        assert kinds["app/Concerns/HasRoles.php#HasRoles"] == NodeKind.TRAIT
        assert kinds["app/Status.php#Status"] == NodeKind.ENUM

    def test_namespace_and_display_name(self, schema) -> None:
        node = schema.get_node("app/Models/User.php#User")

        assert node.namespace == "App\\Models"
        assert node.display_name == "App\\Models\\User"
        assert node.line == 5
        assert node.end_line == 20


class TestPhpEdges:
    """Tests for PHP reference resolution."""

    def test_use_resolves_by_fqn(self, schema) -> None:
        edges = edges_from(schema, "app/Models/User.php")

        assert edges[(EdgeKind.IMPORTS, "app/Contracts/Authenticatable.php#Authenticatable")]
        assert edges[(EdgeKind.IMPORTS, "external:Illuminate\\Support\\Str")] is False

    def test_heritage(self, schema) -> None:
        edges = edges_from(schema, "app/Models/User.php#User")

        assert edges[(EdgeKind.EXTENDS, "app/Models/Model.php#Model")] is True
        assert edges[
            (EdgeKind.IMPLEMENTS, "app/Contracts/Authenticatable.php#Authenticatable")
        ] is True
        assert edges[(EdgeKind.INCLUDES, "app/Concerns/HasRoles.php#HasRoles")] is True
        assert edges[(EdgeKind.IMPLEMENTS, "external:JsonSerializable")] is False

    def test_unique_short_name_fallback(self, tmp_path: Path) -> None:
        """Test that an unmatched FQN falls back to a unique short name."""
        backend = PhpBackend()
        entries = {
            "src/Base.php": {"declarations": [declaration("class", "Base", "Lib")], "uses": []},
            "src/Child.php": {
                "declarations": [declaration("class", "Child", "App", extends=["App\\Base"])],
                "uses": [{"name": "App\\Base", "line": 2}],
            },
        }
        extractions = [
            backend.read_entry(tmp_path / rel, rel, entry) for rel, entry in entries.items()
        ]
        builder = GraphBuilder(str(tmp_path), Language.PHP)
        backend.assemble(builder, tmp_path, extractions, ParseOptions())
        schema = builder.build()

        assert edges_from(schema, "src/Child.php#Child") == {
            (EdgeKind.EXTENDS, "src/Base.php#Base"): True
        }
        # use statements only resolve by fully-qualified name
        assert edges_from(schema, "src/Child.php") == {
            (EdgeKind.IMPORTS, "external:App\\Base"): False
        }

    def test_duplicate_short_name_keeps_first_declaration_edges(self, tmp_path: Path) -> None:
        """Test that a dropped same-named class does not lend its parents to the kept one."""
        backend = PhpBackend()
        entry = {
            "declarations": [
                declaration("class", "Foo", "X", line=3),
                declaration("class", "Foo", "Y", line=8, extends=["Y\\Bar"]),
                declaration("class", "Bar", "Y", line=12),
            ],
            "uses": [],
        }
        extraction = backend.read_entry(tmp_path / "a.php", "a.php", entry)
        builder = GraphBuilder(str(tmp_path), Language.PHP)
        backend.assemble(builder, tmp_path, [extraction], ParseOptions())
        schema = builder.build()

        assert schema.node_ids == ["a.php", "a.php#Foo", "a.php#Bar"]
        assert schema.get_node("a.php#Foo").display_name == "X\\Foo"
        assert schema.edges == ()

    def test_well_formed(self, schema) -> None:
        ids = schema.node_ids
        assert len(ids) == len(set(ids))
        for edge in schema.edges:
            assert edge.source in ids
            if edge.resolved:
                assert edge.target in ids


class TestPhpDecoding:
    """Tests for reading extractor output."""

    def test_per_file_error(self, tmp_path: Path) -> None:
        backend = PhpBackend()
        good, bad = tmp_path / "good.php", tmp_path / "bad.php"
        stdout = (
            '{"success": true, "files": ['
            f'{{"path": "{good}", "ok": true, "declarations": [], "uses": []}},'
            f'{{"path": "{bad}", "ok": false, "error": "Syntax error, unexpected EOF on line 3"}}'
            "]}"
        )

        decoded = backend._decode(tmp_path, [good, bad], ProcessOutcome(0, stdout, ""))

        assert decoded[good].rel_path == "good.php"
        assert decoded[bad].file_path == "bad.php"
        assert "Syntax error" in decoded[bad].message


class TestPhpProbes:
    """Tests for PHP availability probes."""

    def test_php_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(config, "PHP_BINARY", "repograph-no-such-php")

        assert php.is_php_available() is False

    def test_probe_reports_missing_interpreter(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setattr(php, "is_php_available", lambda: False)

        availability = PhpBackend().probe(tmp_path)

        assert availability.available is False
        assert availability.runtime == "PHP"
        assert "REPOGRAPH_PHP_BINARY" in availability.hint

    def test_probe_reports_missing_parser(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setattr(php, "is_php_available", lambda: True)
        monkeypatch.setattr(php, "find_php_parser_autoload", lambda repo_path=None: None)

        availability = PhpBackend().probe(tmp_path)

        assert availability.available is False
        assert availability.runtime == "nikic/php-parser"
        assert "composer global require" in availability.hint

    def test_autoload_candidates(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test that the repo vendor dir is only a candidate when it pins the parser."""
        monkeypatch.setattr(config, "PHP_AUTOLOAD", "/opt/parser/vendor/autoload.php")
        monkeypatch.setattr(config, "COMPOSER_HOMES", [None, tmp_path / "home"])

        assert php._autoload_candidates(tmp_path) == [
            Path("/opt/parser/vendor/autoload.php"),
            tmp_path / "home" / "vendor" / "autoload.php",
        ]

        (tmp_path / "composer.lock").write_text('{"packages": [{"name": "nikic/php-parser"}]}')
        assert tmp_path / "vendor" / "autoload.php" in php._autoload_candidates(tmp_path)
