from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any

import requests

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR / "src") not in sys.path:
    sys.path.insert(0, str(ROOT_DIR / "src"))
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from scholarmatch.config import load_matcher_config
from scholarmatch.embeddings.index import EmbeddingIndex
from scholarmatch.embeddings.model import EmbeddingUnavailableError
from scholarmatch.matcher import MatchResponse, ScholarshipMatcher
from scholarmatch.store import InMemoryScholarshipStore
from scripts.build_embeddings import PROVIDER_CHOICES, build_provider

logger = logging.getLogger("match_profile")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Match one applicant profile against scholarships."
    )
    parser.add_argument(
        "--scholarships",
        type=Path,
        default=ROOT_DIR / "data" / "sample_scholarships.json",
    )
    parser.add_argument(
        "--profile",
        type=str,
        required=True,
        help="Profile as inline JSON or a path to a JSON file (camelCase keys).",
    )
    parser.add_argument("--config", type=Path, default=None, help="Optional matcher config JSON.")
    parser.add_argument("--semantic", action="store_true", help="Enable hybrid ranking.")
    parser.add_argument(
        "--index-path",
        type=Path,
        default=ROOT_DIR / "data" / "processed" / "embedding_index.npz",
    )
    parser.add_argument("--provider", choices=PROVIDER_CHOICES, default="hashing")
    parser.add_argument("--model", type=str, default=None)
    parser.add_argument(
        "--today",
        type=str,
        default=None,
        help="Reference date in YYYY-MM-DD format for deadline ordering. Defaults to today.",
    )
    return parser.parse_args()


def load_profile_payload(value: str) -> dict[str, Any]:
    candidate = Path(value)
    text = candidate.read_text(encoding="utf-8") if candidate.is_file() else value
    payload = json.loads(text)
    if not isinstance(payload, dict):
        raise ValueError("Profile must be a JSON object.")
    return payload


def _coerce_today(value: str | None) -> date | None:
    if value is None:
        return None
    return datetime.strptime(value, "%Y-%m-%d").date()


def run_match(
    *,
    scholarships_path: Path,
    profile: dict[str, Any],
    semantic: bool = False,
    config_path: Path | None = None,
    index_path: Path | None = None,
    provider_name: str = "hashing",
    model: str | None = None,
    today: date | None = None,
) -> MatchResponse:
    store = InMemoryScholarshipStore.from_json(scholarships_path)
    provider = build_provider(provider_name, model=model) if semantic else None
    index = EmbeddingIndex.load(index_path) if semantic and index_path is not None else None

    with ScholarshipMatcher(
        store,
        provider=provider,
        index=index,
        config=load_matcher_config(config_path),
        subscribe=False,
    ) as matcher:
        if semantic:
            try:
                matcher.sync_index()
            except (EmbeddingUnavailableError, requests.RequestException):
                logger.warning(
                    "Embedding index sync failed; matching with the vectors already indexed.",
                    exc_info=True,
                )
        return matcher.match(profile, use_semantic_matching=semantic, today=today)


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    response = run_match(
        scholarships_path=args.scholarships,
        profile=load_profile_payload(args.profile),
        semantic=args.semantic,
        config_path=args.config,
        index_path=args.index_path,
        provider_name=args.provider,
        model=args.model,
        today=_coerce_today(args.today),
    )
    print(json.dumps(response.to_dict(), indent=2, ensure_ascii=False))
    logger.info(
        "%d match(es), %d suggestion(s), strategy=%s",
        response.total_matches,
        len(response.semantic_suggestions),
        response.matching_strategy,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
