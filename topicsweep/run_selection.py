"""
Topic-count sweep over a CSV of tokenized documents.

    python -m topicsweep.run_selection abstracts.csv scores.csv \
        --config topicsweep/config.yaml --fit-output topics.csv
"""

import argparse
import logging
import time
from typing import Any, Dict, Optional, Sequence, Tuple

import pandas as pd
import yaml

from topicsweep.core.topic_modeling.config import (
    GibbsSamplerConfig,
    TopicSelectionConfig,
)
from topicsweep.core.topic_modeling.errors import NoViableCandidateError
from topicsweep.core.topic_modeling.gibbs_lda import GibbsLDASampler
from topicsweep.middlewares.logging import setup_logging
from topicsweep.services.topic_selection_service import TopicSelectionService

logger = logging.getLogger("topicsweep.run_selection")


def parse_candidates(value: Any) -> Tuple[int, ...]:
    """A list of ints or a {start, stop, step} range (stop inclusive)."""
    if isinstance(value, dict):
        start = int(value.get("start", 2))
        stop = int(value["stop"])
        step = int(value.get("step", 1))
        return tuple(range(start, stop + 1, step))
    return tuple(int(k) for k in value)


def load_config(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    with open(path, "r") as file:
        return yaml.safe_load(file) or {}


def build_selection_config(raw: Dict[str, Any]) -> TopicSelectionConfig:
    defaults = TopicSelectionConfig()
    return TopicSelectionConfig(
        candidates=(
            parse_candidates(raw["candidates"])
            if "candidates" in raw
            else defaults.candidates
        ),
        burn_in=int(raw.get("burn_in", defaults.burn_in)),
        iterations=int(raw.get("iterations", defaults.iterations)),
        sample_interval=int(raw.get("sample_interval", defaults.sample_interval)),
        random_seed=raw.get("random_seed", defaults.random_seed),
        max_workers=raw.get("max_workers", defaults.max_workers),
        time_budget_seconds=raw.get(
            "time_budget_seconds", defaults.time_budget_seconds
        ),
        executor=raw.get("executor", defaults.executor),
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("file_input", type=str, help="CSV with one document per row")
    parser.add_argument("file_output", type=str, help="Where to write per-k scores")
    parser.add_argument("--config", type=str, default=None, help="YAML config file")
    parser.add_argument(
        "--text-column", type=str, default="tokens", help="Column holding the tokens"
    )
    parser.add_argument(
        "--id-column", type=str, default=None, help="Column holding document ids"
    )
    parser.add_argument(
        "--fit-output",
        type=str,
        default=None,
        help="Refit the selected k and write its topic summary here",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    raw = load_config(args.config)
    cfg = build_selection_config(raw)
    sampler = GibbsLDASampler(
        GibbsSamplerConfig(
            alpha=raw.get("alpha"),
            eta=float(raw.get("eta", 0.1)),
        )
    )
    service = TopicSelectionService(sampler)

    df = pd.read_csv(args.file_input)
    if args.text_column not in df.columns:
        raise ValueError(f"Input file must contain a '{args.text_column}' column")
    doc_ids = df[args.id_column].tolist() if args.id_column else None
    matrix = service.build_matrix(
        df[args.text_column].fillna("").tolist(),
        doc_ids=doc_ids,
        tfidf_cutoff=raw.get("tfidf_cutoff"),
    )

    start_time = time.time()
    try:
        report = service.select(matrix, cfg)
    except NoViableCandidateError as e:
        logger.error(f"❌ {e}")
        return 1
    logger.info(
        f"✅ Sweep over {len(cfg.candidates)} candidates completed in "
        f"{time.time() - start_time:.2f} seconds; best k={report.best_k}"
    )

    report.to_frame().to_csv(args.file_output, index=False)
    logger.info(f"Scores saved at {args.file_output}")

    if args.fit_output:
        result = service.fit(
            matrix,
            report.best_k,
            iterations=cfg.iterations,
            sample_interval=cfg.sample_interval,
            random_seed=cfg.random_seed,
            topn_words=int(raw.get("topn_words", 10)),
        )
        pd.DataFrame(result.topics).to_csv(args.fit_output, index=False)
        logger.info(f"Topic summary for k={report.best_k} saved at {args.fit_output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
