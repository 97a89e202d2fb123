import json
import sys
from services.catalog.loader import CatalogLoadError, load_companies
from .core import top_matches


def main(argv=None):
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("Usage: python -m services.resolver.cli <company name or symbol>")
        sys.exit(2)
    query = " ".join(args)
    try:
        catalog = load_companies()
    except CatalogLoadError as e:
        print(f"Error loading companies: {e}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps([
        {
            "id": m.entity.id,
            "symbol": m.entity.symbol,
            "name": m.entity.name,
            "score": m.score,
            "tier": m.tier,
        }
        for m in top_matches(catalog, query)
    ], indent=2))


if __name__ == "__main__":
    main()
