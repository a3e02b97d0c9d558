import json
import sys
from pathlib import Path


def main() -> int:
    repo_root = Path(__file__).resolve().parent.parent
    backend_dir = repo_root / "backend"
    output_file = repo_root / "docs" / "openapi-productores-v1.json"
    if len(sys.argv) > 1:
        output_file = Path(sys.argv[1]).resolve()

    sys.path.insert(0, str(backend_dir))

    from app.main import app  # noqa: E402

    output_file.parent.mkdir(parents=True, exist_ok=True)
    schema = app.openapi()
    with output_file.open("w", encoding="utf-8") as f:
        json.dump(schema, f, ensure_ascii=False, indent=2, sort_keys=True)
        f.write("\n")

    paths = sorted(schema.get("paths", {}))
    print(f"OpenAPI exported: {output_file} ({len(paths)} paths)")
    for p in paths:
        print(f"  {p}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
