"""CLI listing the Gemini models the configured API key can use for generateContent."""
import argparse
import asyncio
import json
import sys

from diary_analyzer.core.config import get_settings
from diary_analyzer.core.errors import AnalyzerError
from diary_analyzer.core.gemini_client import GeminiClient, supports_generate_content


def format_model(model: dict) -> str:
    name = model.get("name", "")
    model_id = name[len("models/"):] if name.startswith("models/") else name
    lines = [f"Name: {name}", f"ID:   {model_id}"]
    if model.get("displayName"):
        lines.append(f"Display name: {model['displayName']}")
    return "\n".join(lines)


async def fetch_models(client: GeminiClient, include_all: bool = False) -> list:
    models = await client.list_models()
    if include_all:
        return models
    return [m for m in models if supports_generate_content(m)]


def cmd_list(args, client: GeminiClient = None) -> int:
    try:
        client = client or GeminiClient.from_settings(get_settings())
        print("Fetching available models...", file=sys.stderr)
        models = asyncio.run(fetch_models(client, include_all=args.all))
    except AnalyzerError as e:
        print(f"Error listing models: {e.message}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(models, indent=2))
        return 0

    print("\n--- AVAILABLE MODELS ---")
    for model in models:
        print(format_model(model))
        print("-------------------------")
    print(f"{len(models)} model(s)")
    return 0


def build_parser():
    p = argparse.ArgumentParser(prog="diary-analyzer-models", description="List Gemini models usable by this service")
    p.add_argument("--all", action="store_true", help="Include models that do not support generateContent")
    p.add_argument("--json", action="store_true", help="Print raw model metadata as JSON")
    p.set_defaults(func=cmd_list)
    return p


def main(argv=None):
    p = build_parser()
    args = p.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
