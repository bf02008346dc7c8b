from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR / "src") not in sys.path:
    sys.path.insert(0, str(ROOT_DIR / "src"))

from scholarmatch.config import load_matcher_config
from scholarmatch.embeddings.http import HttpEmbeddingProvider
from scholarmatch.embeddings.index import EmbeddingIndex
from scholarmatch.embeddings.model import (
    DEFAULT_MODEL_NAME,
    EmbeddingProvider,
    HashingEmbeddingProvider,
    SentenceTransformerProvider,
)
from scholarmatch.matcher import ScholarshipMatcher
from scholarmatch.store import InMemoryScholarshipStore

logger = logging.getLogger("build_embeddings")

PROVIDER_CHOICES = ("hashing", "sentence-transformers", "http")


def build_provider(
    name: str, *, model: str | None = None, batch_size: int = 32
) -> EmbeddingProvider:
    if name == "hashing":
        return HashingEmbeddingProvider()
    if name == "sentence-transformers":
        return SentenceTransformerProvider(model or DEFAULT_MODEL_NAME, batch_size=batch_size)
    if name == "http":
        provider = HttpEmbeddingProvider.from_env()
        if model:
            provider = HttpEmbeddingProvider(
                endpoint=provider.endpoint,
                api_key=provider.api_key,
                model=model,
                timeout_seconds=provider.timeout_seconds,
            )
        return provider
    raise ValueError(f"Unknown embedding provider: {name!r}")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Embed approved scholarships into the index.")
    parser.add_argument(
        "--scholarships",
        type=Path,
        default=ROOT_DIR / "data" / "sample_scholarships.json",
        help="JSON list of scholarship records (or an object with a 'scholarships' key).",
    )
    parser.add_argument(
        "--index-path",
        type=Path,
        default=ROOT_DIR / "data" / "processed" / "embedding_index.npz",
    )
    parser.add_argument("--config", type=Path, default=None, help="Optional matcher config JSON.")
    parser.add_argument("--provider", choices=PROVIDER_CHOICES, default="hashing")
    parser.add_argument("--model", type=str, default=None)
    parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Ignore any existing index and embed every approved scholarship.",
    )
    return parser.parse_args()


def build_embeddings(
    *,
    scholarships_path: Path,
    index_path: Path,
    provider: EmbeddingProvider,
    config_path: Path | None = None,
    rebuild: bool = False,
) -> int:
    store = InMemoryScholarshipStore.from_json(scholarships_path)
    index = EmbeddingIndex() if rebuild else EmbeddingIndex.load(index_path)
    if len(index) and not rebuild:
        logger.info("Loaded %d cached embedding(s) from %s", len(index), index_path)

    with ScholarshipMatcher(
        store,
        provider=provider,
        index=index,
        config=load_matcher_config(config_path),
        subscribe=False,
    ) as matcher:
        embedded = matcher.sync_index()
    index.save(index_path)
    logger.info("Wrote %d embedding(s) to %s (%d refreshed).", len(index), index_path, embedded)
    return embedded


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    build_embeddings(
        scholarships_path=args.scholarships,
        index_path=args.index_path,
        provider=build_provider(args.provider, model=args.model),
        config_path=args.config,
        rebuild=args.rebuild,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
