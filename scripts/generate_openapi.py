#!/usr/bin/env python3
"""
Generate the OpenAPI artifact from a module that builds a Registry.

Outputs:
- <output>/openapi.json
- <output>/openapi.sha256

Usage:
    python scripts/generate_openapi.py --module myapp.contracts --output build/
"""

import argparse
import hashlib
import importlib
import json
import sys
from pathlib import Path


def _load_registry(module_name: str, attr: str):
    from apicontract import Registry

    module = importlib.import_module(module_name)
    registry = getattr(module, attr, None)
    if not isinstance(registry, Registry):
        raise SystemExit(f"{module_name}.{attr} is not an apicontract.Registry")
    return registry


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Write the OpenAPI document for a registry.")
    parser.add_argument("--module", required=True, help="Module exposing the registry (e.g. myapp.contracts)")
    parser.add_argument("--attr", default="registry", help="Registry attribute name in the module")
    parser.add_argument("--output", default=".", help="Directory to write openapi.json into")
    parser.add_argument("--title", help="Override OPENAPI_TITLE")
    parser.add_argument("--version", help="Override OPENAPI_API_VERSION")
    args = parser.parse_args(argv)

    from apicontract import OpenAPISettings, generate

    registry = _load_registry(args.module, args.attr)

    settings = OpenAPISettings.from_config()
    overrides = {k: v for k, v in (("title", args.title), ("version", args.version)) if v}
    if overrides:
        settings = settings.model_copy(update=overrides)

    document = generate(registry, settings)

    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    json_blob = json.dumps(document, indent=2, sort_keys=True) + "\n"
    json_path = output_dir / "openapi.json"
    json_path.write_text(json_blob)

    hash_path = output_dir / "openapi.sha256"
    digest = hashlib.sha256(json_blob.encode("utf-8")).hexdigest()
    hash_path.write_text(f"{digest}\n")

    print(f"Wrote {json_path}")
    print(f"Wrote {hash_path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
