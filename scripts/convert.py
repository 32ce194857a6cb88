#!/usr/bin/env python3
import argparse
import json
import logging
import sys
from pathlib import Path


# Ensure local package imports work when running as a script:
#   python scripts/convert.py ...
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from word_tree import parse_docx, render_tree
from word_tree.editing import replace_font, set_document_font
from word_tree.view import to_dict, to_view


def _default_output(input_path: str) -> Path:
    src = Path(input_path)
    return src.with_name(f"{src.stem}.edited{src.suffix}")


def main(argv=None):
    parser = argparse.ArgumentParser(description="docx heading-tree tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_outline = sub.add_parser("outline", help="print the heading tree")
    p_outline.add_argument("input")

    p_export = sub.add_parser("export", help="write the tree as JSON")
    p_export.add_argument("input")
    p_export.add_argument("--output", help="JSON file (default: stdout)")
    p_export.add_argument("--no-raw", action="store_true", help="drop snapshots and raw XML")

    p_set_font = sub.add_parser("set-font", help="set one font on every paragraph")
    p_set_font.add_argument("input")
    p_set_font.add_argument("font")
    p_set_font.add_argument("--output")

    p_replace = sub.add_parser("replace-font", help="swap one font for another")
    p_replace.add_argument("input")
    p_replace.add_argument("from_font")
    p_replace.add_argument("to_font")
    p_replace.add_argument("--output")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    root = parse_docx(args.input)

    if args.cmd == "outline":
        print(root.tree_string(), end="")
    elif args.cmd == "export":
        data = to_view(root) if args.no_raw else to_dict(root)
        text = json.dumps(data, ensure_ascii=False, indent=2)
        if args.output:
            Path(args.output).write_text(text, encoding="utf-8")
        else:
            print(text)
    elif args.cmd == "set-font":
        count = set_document_font(root, args.font)
        output = args.output or _default_output(args.input)
        render_tree(root, output, template=args.input)
        print(f"{count} paragraphs updated -> {output}")
    elif args.cmd == "replace-font":
        count = replace_font(root, args.from_font, args.to_font)
        output = args.output or _default_output(args.input)
        render_tree(root, output, template=args.input)
        print(f"{count} runs updated -> {output}")


if __name__ == "__main__":
    main()
