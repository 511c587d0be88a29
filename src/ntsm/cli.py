"""Command line interface for ntsm."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .api import (
    PackOptions,
    extract_ntsm,
    inspect_ntsm,
    pack_ntsm,
    plan_dry_run,
    validate_ntsm,
)
from .format.errors import FormatError
from .logging import configure_logging, section, step
from .migrate import MigrateOptions, find_source_files, migrate
from .reporting import (
    REPORTERS,
    JsonLinesReporter,
    PlainReporter,
    RichReporter,
    SilentReporter,
    get_reporter,
    set_reporter,
    set_verbosity,
)
from .utils.io import DataError

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def _pack_cmd(args: argparse.Namespace) -> int:
    opts = PackOptions(
        input_spec=args.spec,
        output_path=args.output,
        force=args.force,
        check_glb_magic=not args.no_glb_magic,
    )
    pack_ntsm(opts)
    return EXIT_OK


def _plan_cmd(args: argparse.Namespace) -> int:
    plan, plan_dict = plan_dry_run(
        args.spec, check_glb_magic=not args.no_glb_magic
    )
    rep = get_reporter()
    rep.flush()
    if args.json:
        print(json.dumps(plan_dict, indent=2, sort_keys=True))
    else:
        sections = ",".join(
            f"{s.name}@{s.offset}+{s.size}" for s in plan.sections() if s.size
        )
        rep.status(
            f"Plan summary: file_size={plan.file_size} sections={sections}"
        )
    return EXIT_OK


def _inspect_cmd(args: argparse.Namespace) -> int:
    step(f"inspecting {args.file.name}")
    info = inspect_ntsm(args.file)
    rep = get_reporter()
    rep.flush()
    if args.json:
        print(json.dumps(info, indent=2, sort_keys=True, default=str))
    else:
        header = info.get("header") or {}
        rep.section(f"{args.file.name}")
        rep.status(
            "Inspect summary: "
            + f"file_size={info['file_size']} version={header.get('version')} "
            + f"flags={(header.get('flags') or {}).get('raw')} "
            + f"glb_size={(info.get('glb') or {}).get('size')} "
            + f"emitters={(info.get('particles') or {}).get('count')} "
            + f"textures={(info.get('texture_table') or {}).get('count')} "
            + f"issues={len(info['issues'])}"
        )
        if header:
            rep.status(f"  name: {header.get('name')!r}")
        for entry in (info.get("texture_table") or {}).get("entries", []):
            rep.status(
                f"  texture {entry['name']!r} @{entry['offset']}+{entry['size']}"
            )
        for issue in info["issues"]:
            rep.warning(f"  issue: {issue}")
    return EXIT_FAILED if info["issues"] else EXIT_OK


def _validate_cmd(args: argparse.Namespace) -> int:
    issues = validate_ntsm(args.file)
    rep = get_reporter()
    for issue in issues:
        rep.error(issue)
    rep.status(
        "Validate summary: "
        + f"file={args.file.name} issues={len(issues)} ok={str(not issues).lower()}"
    )
    return EXIT_FAILED if issues else EXIT_OK


def _extract_cmd(args: argparse.Namespace) -> int:
    extract_ntsm(args.file, args.out_dir)
    return EXIT_OK


def _confirm(message: str) -> bool:
    try:
        answer = input(f"{message} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def _migrate_cmd(args: argparse.Namespace) -> int:
    rep = get_reporter()
    if args.concurrency < 0:
        rep.error("--concurrency must be >= 0")
        return EXIT_USAGE
    if not args.source.is_dir():
        rep.error(f"Source directory not found: {args.source}")
        return EXIT_USAGE
    if not args.yes and not args.dry_run:
        count = len(find_source_files(args.source))
        if not _confirm(
            f"Convert {count} file(s) from {args.source} into {args.dest}?"
        ):
            rep.status("Migration cancelled")
            return EXIT_FAILED
    with section(f"Migrate {args.source} -> {args.dest}"):
        stats = migrate(
            MigrateOptions(
                source_dir=args.source,
                dest_dir=args.dest,
                concurrency=args.concurrency,
                dry_run=args.dry_run,
            )
        )
    for path, reason in stats.failures:
        rep.error(f"{path}: {reason}")
    return EXIT_OK if stats.ok else EXIT_FAILED


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="ntsm", description="NTSM container tool"
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (repeatable)",
    )
    p.add_argument(
        "-r",
        "--reporter",
        choices=sorted(REPORTERS),
        default="plain",
        help="Select reporter backend: plain (default), rich, json (JSONL events), silent",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    pk = sub.add_parser("pack", help="Encode a container from a pack spec")
    pk.add_argument("spec", type=Path)
    pk.add_argument("output", type=Path)
    pk.add_argument(
        "--force", action="store_true", help="Overwrite an existing output"
    )
    pk.add_argument(
        "--no-glb-magic",
        dest="no_glb_magic",
        action="store_true",
        help="Accept GLB payloads that do not start with 'glTF'",
    )
    pk.set_defaults(func=_pack_cmd)

    pl = sub.add_parser("plan", help="Compute section layout (dry run)")
    pl.add_argument("spec", type=Path)
    pl.add_argument("--json", action="store_true", help="Emit JSON plan")
    pl.add_argument(
        "--no-glb-magic",
        dest="no_glb_magic",
        action="store_true",
        help="Accept GLB payloads that do not start with 'glTF'",
    )
    pl.set_defaults(func=_plan_cmd)

    i = sub.add_parser("inspect", help="Inspect a container")
    i.add_argument("file", type=Path)
    i.add_argument("--json", action="store_true", help="Emit JSON report")
    i.set_defaults(func=_inspect_cmd)

    v = sub.add_parser("validate", help="Fully decode and validate a container")
    v.add_argument("file", type=Path)
    v.set_defaults(func=_validate_cmd)

    x = sub.add_parser("extract", help="Write GLB and textures to a directory")
    x.add_argument("file", type=Path)
    x.add_argument("out_dir", type=Path)
    x.set_defaults(func=_extract_cmd)

    m = sub.add_parser("migrate", help="Convert .obj/.glb trees to .ntsm")
    m.add_argument("source", type=Path)
    m.add_argument("dest", type=Path)
    m.add_argument(
        "--concurrency",
        type=int,
        default=0,
        help="Worker threads (0 = CPU count)",
    )
    m.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        help="Convert in memory without writing files",
    )
    m.add_argument(
        "--yes", "-y", action="store_true", help="Skip confirmation prompt"
    )
    m.set_defaults(func=_migrate_cmd)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return EXIT_USAGE if e.code else EXIT_OK
    requested = args.reporter
    if requested == "json":
        set_reporter(JsonLinesReporter())
    elif requested == "silent":
        set_reporter(SilentReporter())
    elif requested == "rich":
        if sys.stderr.isatty():
            set_reporter(RichReporter())
        else:
            # no TTY: plain output
            set_reporter(PlainReporter())
    else:
        set_reporter(PlainReporter())
    set_verbosity(args.verbose)
    configure_logging(args.verbose)
    try:
        return args.func(args)
    except (FormatError, DataError, ValueError, OSError) as e:
        get_reporter().error(f"{args.cmd} failed: {e}")
        return EXIT_FAILED


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
