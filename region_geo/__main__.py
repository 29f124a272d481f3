"""CLI entrypoint for region_geo."""

from __future__ import annotations

import argparse
import dataclasses
import logging
from pathlib import Path

from region_geo.config import AnnealingConfig, RegionConfig, SamplerConfig, get_settings
from region_geo.errors import RegionModelError
from region_geo.logging_config import setup_logging
from region_geo.models import ResolvedToponym, TrainingSummary, Variant

logger = logging.getLogger("region_geo")


def main(argv: list[str] | None = None) -> None:
    setup_logging()

    parser = argparse.ArgumentParser(prog="region-geo")
    sub = parser.add_subparsers(dest="command", required=True)

    train_parser = sub.add_parser("train", help="planar region-topic model")
    train_parser.add_argument("--tokens", type=Path, required=True)
    train_parser.add_argument("--toponym-filter", type=Path, required=True)
    train_parser.add_argument("--regions", type=int, required=True)
    _add_training_args(train_parser)

    sph_parser = sub.add_parser("spherical", help="region model on a latitude/longitude grid")
    sph_parser.add_argument("--tokens", type=Path, required=True)
    sph_parser.add_argument("--lexicon", type=Path, required=True)
    sph_parser.add_argument("--gazetteer", type=Path, required=True)
    sph_parser.add_argument("--degrees", type=float, default=None)
    sph_parser.add_argument("--resolve", action="store_true", help="include per-token coordinates")
    _add_training_args(sph_parser)

    args = parser.parse_args(argv)

    try:
        if args.command == "train":
            summary = _train_planar(args)
        else:
            summary = _train_spherical(args)
    except RegionModelError as exc:
        logger.error("%s failed: %s", args.command, exc)
        raise
    print(summary.model_dump_json(indent=2, exclude_none=True))


def _add_training_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--alpha", type=float)
    p.add_argument("--beta", type=float)
    p.add_argument("--seed", type=int)
    p.add_argument("--initial-temperature", type=float)
    p.add_argument("--cooling-iterations", type=int)
    p.add_argument("--burn-in", type=int)
    p.add_argument("--lag", type=int)
    p.add_argument("--samples", type=int)
    p.add_argument("--iterations", type=int)
    p.add_argument("--top-k", type=int, default=10)


def _overrides(args: argparse.Namespace, names: tuple[str, ...]) -> dict:
    return {n: getattr(args, n) for n in names if getattr(args, n) is not None}


def _configs(args: argparse.Namespace) -> tuple[SamplerConfig, AnnealingConfig]:
    settings = get_settings()
    sampler = dataclasses.replace(settings.sampler, **_overrides(args, ("alpha", "beta", "seed")))
    annealing = dataclasses.replace(
        settings.annealing,
        **_overrides(
            args,
            ("initial_temperature", "cooling_iterations", "burn_in", "lag", "samples", "iterations"),
        ),
    )
    return sampler, annealing


def _train_planar(args: argparse.Namespace) -> TrainingSummary:
    from region_geo.filters import RegionFilters, document_filter_from_toponyms
    from region_geo.model import RegionTopicModel
    from region_geo.readers import read_toponym_filter, read_token_file

    sampler, annealing = _configs(args)
    corpus = read_token_file(args.tokens)
    toponym = read_toponym_filter(args.toponym_filter, corpus.W, args.regions)
    filters = RegionFilters(toponym, document_filter_from_toponyms(corpus, toponym))

    model = RegionTopicModel(corpus, filters, args.regions, sampler, annealing)
    posterior = model.train()
    return TrainingSummary.from_posterior(posterior, Variant.PLANAR, corpus.N, top_k=args.top_k)


def _train_spherical(args: argparse.Namespace) -> TrainingSummary:
    import numpy as np

    from region_geo.corpus import TokenStream
    from region_geo.filters import RegionFilters, document_filter_from_toponyms
    from region_geo.gazetteer import Gazetteer, toponym_candidates
    from region_geo.model import RegionTopicModel
    from region_geo.readers import read_lexicon, read_token_file
    from region_geo.regions import RegionGrid
    from region_geo.spherical import SphericalStatistics, region_centers

    sampler, annealing = _configs(args)
    region_cfg = get_settings().regions
    if args.degrees is not None:
        region_cfg = RegionConfig(degrees_per_region=args.degrees)
    grid = RegionGrid(region_cfg.degrees_per_region)

    raw = read_token_file(args.tokens)
    lexicon = read_lexicon(args.lexicon)
    candidates = toponym_candidates(lexicon, Gazetteer.from_sqlite(args.gazetteer))

    # Toponyms unknown to the gazetteer cannot be placed; treat them as plain words
    is_toponym = raw.is_toponym & np.isin(raw.word_ids, list(candidates))
    dropped = int(raw.is_toponym.sum() - is_toponym.sum())
    if dropped:
        logger.warning("%d toponym tokens have no gazetteer candidates and are sampled as plain words", dropped)
    corpus = TokenStream(raw.word_ids, raw.doc_ids, is_toponym, raw.is_stopword, vocab_size=raw.W, doc_count=raw.D)

    stats = SphericalStatistics(
        {w: c for w, c in candidates.items() if w < corpus.W},
        grid,
    )
    toponym = stats.toponym_filter(corpus.W)
    filters = RegionFilters(toponym, document_filter_from_toponyms(corpus, toponym))

    model = RegionTopicModel(corpus, filters, grid.n_regions, sampler, annealing, extra=stats)
    posterior = model.train()

    summary = TrainingSummary.from_posterior(
        posterior,
        Variant.SPHERICAL,
        corpus.N,
        top_k=args.top_k,
        centers=region_centers(posterior.extra["region_means"]),
    )
    if args.resolve:
        for token, (lat, lon) in sorted(stats.resolve_coordinates().items()):
            word_id = int(corpus.word_ids[token])
            summary.toponyms.append(
                ResolvedToponym(
                    token=token,
                    word_id=word_id,
                    word=lexicon.get(word_id),
                    region=int(corpus.region[token]),
                    latitude=lat,
                    longitude=lon,
                )
            )
    return summary


if __name__ == "__main__":
    main()
