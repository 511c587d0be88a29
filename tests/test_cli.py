from __future__ import annotations

"""CLI smoke tests: exit codes and JSON reporter output."""

import json
from pathlib import Path

import pytest

from ntsm.cli import main
from ntsm.format.container import load, save
from ntsm.format.models import HeaderFields, Texture

from ntsm_fixtures import fake_glb, sword_bytes


def _events(out: str) -> list[dict]:
    return [json.loads(line) for line in out.splitlines() if line.startswith("{")]


def _spec(tmp: Path) -> Path:
    spec = tmp / "spark.json"
    spec.write_text(
        json.dumps(
            {
                "name": "spark",
                "glb": {"data_hex": fake_glb(24).hex()},
                "emitters": [{"texture_index": -1, "loop": True}],
            }
        )
    )
    return spec


def test_pack_then_validate(tmp_path: Path, capsys):  # noqa: N802
    out = tmp_path / "spark.ntsm"
    assert main(["-r", "json", "pack", str(_spec(tmp_path)), str(out)]) == 0
    assert load(out).emitters[0].loop
    events = _events(capsys.readouterr().out)
    summaries = {e["summary_type"]: e for e in events if e["event"] == "summary"}
    assert summaries["pack"]["bytes"] == str(out.stat().st_size)
    assert main(["-r", "silent", "validate", str(out)]) == 0


def test_validate_bad_file_exit_1(tmp_path: Path):  # noqa: N802
    bad = tmp_path / "bad.ntsm"
    bad.write_bytes(sword_bytes(particle_size=130))
    assert main(["-r", "silent", "validate", str(bad)]) == 1


def test_plan_json(tmp_path: Path, capsys):  # noqa: N802
    assert main(["-r", "silent", "plan", str(_spec(tmp_path)), "--json"]) == 0
    plan = json.loads(capsys.readouterr().out)
    assert plan["glb"] == {"name": "glb", "offset": 192, "size": 24}
    assert plan["file_size"] == 192 + 24 + 128


def test_inspect_json(tmp_path: Path, capsys):  # noqa: N802
    f = tmp_path / "sword.ntsm"
    f.write_bytes(sword_bytes())
    assert main(["-r", "silent", "inspect", str(f), "--json"]) == 0
    info = json.loads(capsys.readouterr().out)
    assert info["header"]["name"] == "sword"
    assert info["particles"]["count"] == 1


def test_extract(tmp_path: Path):  # noqa: N802
    f = tmp_path / "box.ntsm"
    save(f, HeaderFields(name="box"), fake_glb(), textures=[Texture("t", b"xy")])
    assert main(["-r", "silent", "extract", str(f), str(tmp_path / "out")]) == 0
    assert (tmp_path / "out" / "box.glb").read_bytes() == fake_glb()
    assert (tmp_path / "out" / "000_t").read_bytes() == b"xy"


def test_pack_failure_exit_1(tmp_path: Path):  # noqa: N802
    spec = tmp_path / "bad.json"
    spec.write_text(json.dumps({"name": "bad", "glb": {"data_hex": "00" * 4}}))
    assert main(["-r", "silent", "pack", str(spec), str(tmp_path / "o.ntsm")]) == 1
    assert not (tmp_path / "o.ntsm").exists()


def test_usage_error_exit_2(capsys):  # noqa: N802
    assert main(["frobnicate"]) == 2
    assert main([]) == 2


def test_migrate_with_yes(tmp_path: Path):  # noqa: N802
    src = tmp_path / "src"
    src.mkdir()
    (src / "a.glb").write_bytes(fake_glb())
    (src / "b.glb").write_bytes(b"junk" * 8)
    rc = main(
        ["-r", "silent", "migrate", str(src), str(tmp_path / "dst"), "--yes"]
    )
    assert rc == 1
    assert (tmp_path / "dst" / "a.ntsm").exists()


def test_migrate_prompt_declined(tmp_path: Path, monkeypatch):  # noqa: N802
    src = tmp_path / "src"
    src.mkdir()
    (src / "a.glb").write_bytes(fake_glb())
    monkeypatch.setattr("builtins.input", lambda prompt="": "n")
    rc = main(["-r", "silent", "migrate", str(src), str(tmp_path / "dst")])
    assert rc == 1
    assert not (tmp_path / "dst").exists()


@pytest.mark.parametrize("answer", ["y", "yes"])
def test_migrate_prompt_accepted(tmp_path: Path, monkeypatch, answer):  # noqa: N802
    src = tmp_path / "src"
    src.mkdir()
    (src / "a.glb").write_bytes(fake_glb())
    monkeypatch.setattr("builtins.input", lambda prompt="": answer)
    rc = main(["-r", "silent", "migrate", str(src), str(tmp_path / "dst")])
    assert rc == 0
    assert load(tmp_path / "dst" / "a.ntsm").name == "a"
