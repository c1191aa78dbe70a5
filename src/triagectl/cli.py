#!/usr/bin/env python3
"""Unified CLI for triagectl -- CI failure triage."""

import argparse
import json
import logging
import sys

from triagectl import __version__


def _parse_csv_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def cmd_check(args):
    from triagectl.check import run
    return run(
        args.repo, args.pr, args.job,
        base_commit_date=args.base_commit_date,
        lookback_hours=args.lookback_hours,
        history_path=args.history,
        output=args.output,
    )


def cmd_classify(args):
    from triagectl.classify import run
    from triagectl.config import load_settings

    try:
        settings = load_settings()
    except ValueError as e:
        logging.getLogger(__name__).error("%s", e)
        return 1
    return run(
        args.job,
        check_log=not args.no_log_check,
        config=settings.classifier_config(),
        log_url_template=settings.log_url_template,
    )


def cmd_suppressed(args):
    from triagectl.check import load_job
    from triagectl.classify import get_suppressed_labels

    logger = logging.getLogger(__name__)
    try:
        job = load_job(args.job)
    except (OSError, ValueError, TypeError) as e:
        logger.error("%s", e)
        return 1

    if args.labels is not None:
        labels = _parse_csv_list(args.labels)
    else:
        if not args.repo or args.pr is None:
            logger.error("Either --labels or both --repo and --pr are required")
            return 1
        from triagectl.github import fetch_issue_labels
        try:
            labels = fetch_issue_labels(args.repo, args.pr)
        except Exception as e:
            logger.error("Failed to fetch labels: %s", e)
            return 1

    print(json.dumps(get_suppressed_labels(job, labels)))
    return 0


def main():
    parser = argparse.ArgumentParser(
        prog="triagectl",
        description="CI failure triage -- tells known and flaky failures apart from new ones",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug", action="store_true",
        help="Enable debug logging (verbose output)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- check ---
    p_check = subparsers.add_parser(
        "check", help="Look for an earlier occurrence of a job's failure",
    )
    p_check.add_argument(
        "--repo", required=True,
        help="Target repository (owner/name)",
    )
    p_check.add_argument(
        "--pr", type=int, required=True,
        help="Pull request number the job ran for",
    )
    p_check.add_argument(
        "--job", required=True,
        help="Path to the failed job record (JSON)",
    )
    p_check.add_argument(
        "--base-commit-date", default=None,
        help="Timestamp of the PR's base commit (ISO-8601, optional)",
    )
    p_check.add_argument(
        "--lookback-hours", type=int, default=None,
        help="Hours to search before the base commit (default: 24)",
    )
    p_check.add_argument(
        "--history", default=None,
        help="Search a local JSON list of job records instead of the search store",
    )
    p_check.add_argument(
        "--output", default=None,
        help="Write the verdict JSON here instead of stdout",
    )
    p_check.set_defaults(func=cmd_check)

    # --- classify ---
    p_classify = subparsers.add_parser(
        "classify", help="Evaluate infra-flaky and log-classifier predicates",
    )
    p_classify.add_argument(
        "--job", required=True,
        help="Path to a job record or list of job records (JSON)",
    )
    p_classify.add_argument(
        "--no-log-check", action="store_true",
        help="Skip the raw log existence check",
    )
    p_classify.set_defaults(func=cmd_classify)

    # --- suppressed ---
    p_suppressed = subparsers.add_parser(
        "suppressed", help="List PR labels that suppress a job's failures",
    )
    p_suppressed.add_argument(
        "--job", required=True,
        help="Path to the job record (JSON)",
    )
    p_suppressed.add_argument(
        "--labels", default=None,
        help="Comma-separated PR labels (default: fetch from --repo/--pr)",
    )
    p_suppressed.add_argument(
        "--repo", default=None,
        help="Target repository (owner/name)",
    )
    p_suppressed.add_argument(
        "--pr", type=int, default=None,
        help="Pull request number",
    )
    p_suppressed.set_defaults(func=cmd_suppressed)

    args = parser.parse_args()

    level = logging.DEBUG if args.debug else logging.INFO
    logging.basicConfig(
        level=level,
        format=(
            "%(message)s" if level == logging.INFO
            else "%(asctime)s %(name)s %(levelname)s %(message)s"
        ),
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
