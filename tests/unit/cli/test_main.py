"""Unit tests for CLI command handling."""

from __future__ import annotations

import json
import sqlite3

import pytest

from cli.main import main


def _write_config(tmp_path) -> str:
    database = tmp_path / "prod.db"
    connection = sqlite3.connect(database)
    connection.execute("CREATE TABLE users (id INTEGER, email TEXT)")
    connection.executemany(
        "INSERT INTO users VALUES (?, ?)", [(1, "ada@corp.io"), (2, "grace@corp.io")]
    )
    connection.commit()
    connection.close()
    config_path = tmp_path / "conf.yaml"
    config_path.write_text(
        "datastore:\n"
        "  local_disk:\n"
        "    dir: dumps\n"
        "source:\n"
        "  connection:\n"
        "    kind: sqlite\n"
        "    path: prod.db\n"
        "  transformers:\n"
        "    - table: users\n"
        "      columns:\n"
        "        - name: email\n"
        "          transformer_name: email\n",
        encoding="utf-8",
    )
    return str(config_path)


def test_cli_dump_create_prints_name(tmp_path, capsys) -> None:
    """CLI dump create should print the created dump name."""
    config_path = _write_config(tmp_path)

    exit_code = main(["-c", config_path, "dump", "create", "--name", "prod-2024"])
    output = capsys.readouterr().out.strip()

    assert exit_code == 0 and output == "prod-2024"


def test_cli_dump_create_defaults_name(tmp_path, capsys) -> None:
    """Dumps without --name are named after the epoch milliseconds."""
    config_path = _write_config(tmp_path)

    main(["-c", config_path, "dump", "create"])
    output = capsys.readouterr().out.strip()

    assert output.startswith("dump-") and output[len("dump-") :].isdigit()


def test_cli_dump_list_prints_tab_separated_rows(tmp_path, capsys) -> None:
    """CLI dump list should print one row per dump."""
    config_path = _write_config(tmp_path)
    main(["-c", config_path, "dump", "create", "--name", "prod-2024"])
    capsys.readouterr()

    exit_code = main(["-c", config_path, "dump", "list"])
    fields = capsys.readouterr().out.strip().split("\t")

    assert exit_code == 0 and fields[0] == "prod-2024" and fields[3:] == ["true", "false"]


def test_cli_restore_output_streams_rows(tmp_path, capsys) -> None:
    """Restore with --output should print anonymized JSONL rows."""
    config_path = _write_config(tmp_path)
    main(["-c", config_path, "dump", "create", "--name", "prod-2024"])
    capsys.readouterr()

    exit_code = main(
        ["-c", config_path, "dump", "restore", "local", "--path", "x.db", "--output"]
    )
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]

    assert exit_code == 0 and [line["row"]["id"] for line in lines] == [1, 2]
    assert all(line["row"]["email"] != "ada@corp.io" for line in lines)


def test_cli_restore_local_sqlite(tmp_path, capsys) -> None:
    """Restore local should write a SQLite file."""
    config_path = _write_config(tmp_path)
    main(["-c", config_path, "dump", "create", "--name", "prod-2024"])
    restored = tmp_path / "restored.sqlite"

    exit_code = main(
        ["-c", config_path, "dump", "restore", "local", "-v", "prod-2024", "--path", str(restored)]
    )

    connection = sqlite3.connect(restored)
    count = connection.execute("SELECT COUNT(*) FROM users").fetchone()[0]
    connection.close()
    assert exit_code == 0 and count == 2


def test_cli_delete_unknown_dump_returns_error(tmp_path, capsys) -> None:
    """Domain errors should print to stderr with exit code 1."""
    config_path = _write_config(tmp_path)

    exit_code = main(["-c", config_path, "dump", "delete", "missing"])

    assert exit_code == 1 and "missing" in capsys.readouterr().err


def test_cli_transformer_list(capsys) -> None:
    """Transformer list should not require a config file."""
    exit_code = main(["transformer", "list"])
    names = [line.split("\t")[0] for line in capsys.readouterr().out.splitlines()]

    assert exit_code == 0 and "email" in names and "credit-card" in names


def test_cli_requires_subcommand() -> None:
    """Argparse should reject a missing command."""
    with pytest.raises(SystemExit):
        main([])
