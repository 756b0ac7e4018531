# main.py
import argparse
import json
import logging
import sys
from typing import Dict, List, Optional

# --- Setup Logging ---
# Configure logging BEFORE importing other project modules
from companylens.config.logging_config import setup_logging

setup_logging()

from companylens.config.settings import get_settings
from companylens.core.exceptions import (CompanyLensError, SearchCancelledError,
                                         SearchValidationError)
from companylens.search.extractor import FilterExtractor
from companylens.search.vocabulary import build_default_vocabulary

# Get logger for this script
logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None):
    """Parses command-line arguments."""
    parser = argparse.ArgumentParser(
        description="CompanyLens natural-language company search.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter)

    # --- Mode Selection ---
    parser.add_argument(
        "--mode",
        choices=['extract', 'search', 'vocabulary'],
        required=True,
        help=("Execution mode: "
              "'extract' (show inferred filters and cleaned query; no I/O), "
              "'search' (run the full hybrid search), "
              "'vocabulary' (show the vocabulary built from the database)."))

    parser.add_argument("--query",
                        type=str,
                        default=None,
                        help="[Extract/Search Mode] Free-text query.")

    # --- Options for 'search' mode ---
    parser.add_argument(
        "--filter",
        dest="filters",
        action='append',
        default=[],
        metavar='FIELD=VALUE',
        help=
        "[Search Mode] Explicit filter override, repeatable (e.g. batch=W23, tags=ai,fintech)."
    )
    parser.add_argument("--limit",
                        type=int,
                        default=None,
                        metavar='N',
                        help="[Search Mode] Page size (default from settings).")
    parser.add_argument("--offset",
                        type=int,
                        default=0,
                        metavar='N',
                        help="[Search Mode] Number of results to skip.")

    # --- Options for 'extract' mode ---
    parser.add_argument(
        "--db-vocabulary",
        action='store_true',
        help=
        "[Extract Mode] Build the vocabulary from the database instead of the built-in defaults."
    )

    return parser.parse_args(argv)


def _parse_filters(pairs: List[str]) -> Dict[str, str]:
    """Helper to parse FIELD=VALUE pairs into a filter mapping."""
    filters: Dict[str, str] = {}
    for pair in pairs:
        field, sep, value = pair.partition('=')
        if not sep or not field.strip():
            raise SearchValidationError("Invalid --filter argument",
                                        errors=[f"expected FIELD=VALUE, got '{pair}'"])
        filters[field.strip()] = value.strip()
    return filters


def _load_db_vocabulary():
    from companylens.database.session import initialize_database
    from companylens.search.service import load_vocabulary

    engine, session_factory = initialize_database(get_settings().database,
                                                  create_schema=False)
    try:
        return load_vocabulary(session_factory)
    finally:
        engine.dispose()


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


def main(argv: Optional[List[str]] = None):
    """Main execution function."""
    args = parse_arguments(argv)
    logger.info(f"Executing CompanyLens in mode: {args.mode}")

    service = None
    exit_code = 0  # Assume success unless error occurs

    try:
        if args.mode in ('extract', 'search') and not args.query:
            logger.error("--query is required for extract and search modes.")
            exit_code = 2

        elif args.mode == 'extract':
            vocabulary = (_load_db_vocabulary()
                          if args.db_vocabulary else build_default_vocabulary())
            filters, cleaned_query = FilterExtractor(vocabulary).extract(
                args.query)
            _print_json({
                "filters": filters.model_dump(exclude_none=True),
                "cleaned_query": cleaned_query,
            })

        elif args.mode == 'search':
            from companylens.search.service import create_search_service

            # Initialization errors are critical and will raise RuntimeError
            service = create_search_service(get_settings())
            response = service.search(args.query,
                                      explicit_filters=_parse_filters(
                                          args.filters),
                                      limit=args.limit,
                                      offset=args.offset)
            _print_json(response.model_dump(mode='json'))

        elif args.mode == 'vocabulary':
            vocabulary = _load_db_vocabulary()
            _print_json({
                "summary": vocabulary.summary(),
                "batches": sorted(vocabulary.batches.values()),
                "stages": sorted(vocabulary.stages.values()),
                "statuses": sorted(vocabulary.statuses.values()),
                "regions": sorted(vocabulary.regions.values()),
            })

        else:
            # Should not happen if argparse choices are set correctly
            logger.error(f"Unknown mode: {args.mode}")
            exit_code = 1

    except SearchValidationError as ve:
        logger.error(f"Invalid search request: {ve}")
        exit_code = 2
    except SearchCancelledError as ce:
        logger.info(f"Search cancelled: {ce}")
        exit_code = 130
    except CompanyLensError as ce:
        logger.critical(f"A CompanyLens error occurred: {ce}", exc_info=True)
        exit_code = 1
    except RuntimeError as rte:  # Settings could not be loaded
        logger.critical(f"CompanyLens failed to initialize: {rte}",
                        exc_info=True)
        exit_code = 1
    except Exception as e:
        logger.critical(f"An unexpected error occurred: {e}", exc_info=True)
        exit_code = 1
    finally:
        if service:
            logger.info("Closing search service resources...")
            service.close()
        logger.info(f"CompanyLens finished with exit code {exit_code}.")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
