#!/usr/bin/env python3
"""CLI wrapper for the forge pipeline.

Usage:
    python forge_cli.py --theme Christmas --style "Minimalist Vector" --product-type Mug
    python forge_cli.py --theme Halloween --style "Retro Script" --select 1,3 --publish
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import time
from pathlib import Path
from typing import List

from dotenv import load_dotenv

load_dotenv()

import log_setup
log_setup.configure(os.environ.get("LOG_LEVEL", "WARNING"))

import catalog
import forge_core
import launch_pack
import providers
import settings as forge_settings


def main(argv: List[str] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Forge holiday print-on-demand products (concepts, designs, mockups, listings)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python forge_cli.py --theme Christmas --style "Minimalist Vector" --product-type Mug
  python forge_cli.py --theme Halloween --style "Retro Script" --select 1,3 --publish
  python forge_cli.py --text-provider openai --image-provider replicate --theme Hanukkah
""",
    )
    parser.add_argument("--theme", default=catalog.DEFAULT_THEME, help="Holiday theme (default: Christmas)")
    parser.add_argument("--style", choices=catalog.DESIGN_STYLES, default=catalog.DEFAULT_STYLE)
    parser.add_argument("--product-type", choices=catalog.PRODUCT_TYPES, default=catalog.DEFAULT_PRODUCT_TYPE)
    parser.add_argument(
        "--select",
        default="1",
        help="Comma-separated 1-based concept numbers to render, or 'all' (default: 1)",
    )
    parser.add_argument("--text-provider", choices=forge_settings.TEXT_PROVIDERS, default=None)
    parser.add_argument("--text-model", default=None)
    parser.add_argument("--image-provider", choices=forge_settings.IMAGE_PROVIDERS, default=None)
    parser.add_argument("--image-model", default=None)
    parser.add_argument(
        "--output-dir",
        default="cli_output",
        help="Directory to save designs, mockups and launch packs (default: cli_output)",
    )
    parser.add_argument("--publish", action="store_true", help="Publish each product to Printify")
    parser.add_argument("--json", action="store_true", help="Print the finalized products as JSON")
    parser.add_argument("--list-options", action="store_true", help="List styles and product types and exit")

    args = parser.parse_args(argv)

    if args.list_options:
        _list_options()
        return 0

    token = os.environ.get("PRINTIFY_API_TOKEN", "")
    if args.publish and not token:
        print("✗  PRINTIFY_API_TOKEN not set (required with --publish)", file=sys.stderr)
        return 2

    try:
        settings = forge_settings.resolve({
            "text_provider": args.text_provider,
            "text_model": args.text_model,
            "image_provider": args.image_provider,
            "image_model": args.image_model,
        })
    except ValueError as exc:
        print(f"✗  {exc}", file=sys.stderr)
        return 2

    theme = args.theme.strip()
    output_dir = Path(args.output_dir) / f"{launch_pack.safe_title(theme)}_{int(time.time())}"
    output_dir.mkdir(parents=True, exist_ok=True)

    _echo("\n  ✦ Alchemist Forge CLI")
    _echo(f"  Theme   : {theme}")
    _echo(f"  Style   : {args.style}")
    _echo(f"  Product : {args.product_type}")
    _echo(f"  Text    : {settings['text_provider']}/{settings['text_model']}")
    _echo(f"  Images  : {settings['image_provider']}/{settings['image_model']}")
    _echo(f"  Output  : {output_dir}\n")

    def progress_cb(event: dict) -> None:
        status = event.get("status", "")
        if status == "progress":
            return
        prefix = {
            "started":   "  ◌ ",
            "completed": "  ✓ ",
            "failed":    "  ✗ ",
        }.get(status, "    ")
        _echo(f"{prefix}{event.get('message', '')}")

    def on_progress(current: int, total: int) -> None:
        _echo(f"    [{current}/{total}]")

    pipeline = forge_core.ForgePipeline(
        text_generator=providers.make_text_generator(settings),
        image_generator=providers.make_image_generator(settings),
        settings=settings,
        progress_cb=progress_cb,
    )

    start = time.time()
    try:
        concepts = pipeline.ideate(theme, args.style, args.product_type)
        for i, c in enumerate(concepts, start=1):
            _echo(f"    {i}. {c.title}: \"{c.display_text}\"")

        chosen = _pick(concepts, args.select)
        designs = pipeline.render_designs(chosen, args.style)
        items = [forge_core.FinalizationItem(design=d, product_type=args.product_type) for d in designs]
        products = pipeline.finalize_assets(items, theme, on_progress=on_progress)
    except Exception as exc:  # provider SDK errors surface here too
        print(f"\n✗  {exc}", file=sys.stderr)
        return 1

    for product in products:
        folder = output_dir / launch_pack.safe_title(product.concept.title)
        (folder / "Mockups").mkdir(parents=True, exist_ok=True)
        (folder / "design.png").write_bytes(product.design.image.data)
        (folder / "listing_copy.txt").write_text(
            launch_pack.listing_copy_text(product.listing_copy), encoding="utf-8"
        )
        for n, mockup in enumerate(product.mockups, start=1):
            (folder / "Mockups" / f"mockup_{n}.{mockup.extension}").write_bytes(mockup.data)

    name, data = launch_pack.build_launch_pack(products)
    (output_dir / name).write_bytes(data)

    exit_code = 0
    if args.publish:
        for product in products:
            try:
                pipeline.publish(product, token)
            except Exception as exc:
                print(f"  ✗  {product.concept.title}: {exc}", file=sys.stderr)
                exit_code = 1

    _echo("\n  ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━")
    for product in products:
        published = f"  → Printify {product.publish_id}" if product.publish_id else ""
        _echo(f"  {product.concept.title} ({product.product_type}): {len(product.mockups)} mockups{published}")
    _echo(f"  Duration: {time.time() - start:.1f}s")
    _echo(f"  Pack    : {output_dir / name}\n")

    if args.json:
        print(json.dumps([p.to_dict() for p in products], indent=2))

    return exit_code


def _pick(concepts: List[forge_core.Concept], select: str) -> List[forge_core.Concept]:
    if select.strip().lower() == "all":
        return list(concepts)
    picked = []
    for raw in select.split(","):
        raw = raw.strip()
        if not raw:
            continue
        n = int(raw)
        if not 1 <= n <= len(concepts):
            raise ValueError(f"--select {n} is out of range (1-{len(concepts)})")
        picked.append(concepts[n - 1])
    if not picked:
        raise ValueError("--select did not name any concept")
    return picked


def _list_options() -> None:
    print("\nDesign Styles")
    print("─" * 40)
    for style in catalog.DESIGN_STYLES:
        print(f"  {style}")
    print("\nProduct Types")
    print("─" * 40)
    for product_type in catalog.PRODUCT_TYPES:
        mapping = catalog.PRINTIFY_PRODUCT_MAP[product_type]
        print(f"  {product_type:<12} blueprint {mapping['blueprint_id']}, provider {mapping['print_provider_id']}")
    available = providers.available_providers()
    print("\nConfigured Providers")
    print("─" * 40)
    print(f"  text : {', '.join(available['text']) or 'none'}")
    print(f"  image: {', '.join(available['image']) or 'none'}")
    print()


def _echo(msg: str) -> None:
    print(msg, flush=True)


if __name__ == "__main__":
    raise SystemExit(main())
