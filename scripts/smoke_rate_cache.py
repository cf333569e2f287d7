"""Smoke script for the rate cache.

Demonstrates, against the offline 'static' fetcher:
 1. Priming loads symbols + USD rates.
 2. A second read within the staleness threshold reuses the snapshot.
 3. Asking for another base refetches in that base.
 4. Conversion goes through the cache base.

Pass --provider exchangerate-host to hit the real upstream instead.

NOTE: This is a lightweight diagnostic and not a formal test.
"""

import argparse
import os
import sys
from pprint import pprint


def run(provider: str) -> None:
    from app.core.config import Settings
    from app.services.rates.cache_service import build_rate_cache_service

    settings = Settings(exchange_rate_provider=provider)
    settings.init_post_load()
    svc = build_rate_cache_service(settings)
    out = {}

    svc.prime()
    out["primed"] = svc.status()

    first = svc.state.last_fetched_at
    svc.get_rates("USD")
    out["reused_snapshot"] = svc.state.last_fetched_at == first

    eur = svc.get_rates("EUR")
    out["eur_view"] = {c: eur[c] for c in sorted(eur)[:5]}
    out["after_base_switch"] = svc.status()

    res = svc.convert("EUR", "INR", 10)
    out["convert"] = {
        "from": res.from_currency,
        "to": res.to_currency,
        "amount": res.amount,
        "result": res.result,
        "via": res.base_currency,
    }
    pprint(out)


if __name__ == "__main__":
    sys.path.append(os.getcwd())
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--provider", default="static")
    run(parser.parse_args().provider)
