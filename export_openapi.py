#!/usr/bin/env python3
"""Export the OpenAPI schema to a JSON file."""

import json
import sys
from pathlib import Path

from app.main import app

if __name__ == "__main__":
    output_path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(__file__).parent / "openapi.json"

    openapi_schema = app.openapi()

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(openapi_schema, f, indent=2, ensure_ascii=False)

    print(f"OpenAPI schema exported to: {output_path} ({len(openapi_schema.get('paths', {}))} paths)")
