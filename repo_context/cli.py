"""
CLI for the repo_context selection and context engine.

Selects files for a question against a local checkout, builds the line-numbered
context and optionally checks the citations of a saved model answer.
"""
import sys
import json
import argparse
import logging
from .cache import make_namespace
from .citations import parse_citations
from .config import get_settings
from .context_utils import format_context_index
from .errors import RepoContextError
from .file_filters import tree_stats
from .pipeline import ContextPipeline
from .repository import LocalRepository
from .tokens import format_token_count, token_warning_level

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s',
    datefmt='%H:%M:%S'
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="repo_context: pick whole files for a code question and build an LLM context",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Select files and show the context index
  python -m repo_context.cli "How does login work?" --repo-dir ./checkout

  # Print the full context document
  python -m repo_context.cli "Explain src/auth.ts" --repo-dir ./checkout --show-context

  # Check citations in an answer saved from the model
  python -m repo_context.cli "How does login work?" --repo-dir ./checkout --answer-file answer.md
        """
    )

    parser.add_argument(
        "question",
        help="Developer question about the repository"
    )

    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--repo-dir",
        help="Path to a local checkout"
    )
    target.add_argument(
        "--repo",
        help="owner/repo, resolved under REPOS_DIR"
    )

    parser.add_argument(
        "--namespace",
        help="Cache namespace (default: owner/repo or the checkout directory name)"
    )

    parser.add_argument(
        "--budget",
        type=int,
        default=None,
        help="Context token budget (default: MODEL_CONTEXT_WINDOW - RESERVED_TOKENS)"
    )

    parser.add_argument(
        "--show-context",
        action="store_true",
        help="Print the normalized context document"
    )

    parser.add_argument(
        "--answer-file",
        help="Model answer to validate citations against the context"
    )

    parser.add_argument(
        "--trace",
        action="store_true",
        help="Show scores of the selected files"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose logging"
    )

    parser.add_argument(
        "--output",
        "-o",
        help="Output file for diagnostics JSON"
    )
    return parser


def open_repository(args, settings):
    """Resolve the CLI target into (repository, namespace)."""
    if args.repo:
        owner, _, name = args.repo.partition("/")
        if not owner or not name:
            raise RepoContextError(f"Expected owner/repo, got {args.repo!r}")
        repository = LocalRepository.from_namespace(settings.REPOS_DIR, owner, name)
        return repository, args.namespace or make_namespace(owner, name)

    repository = LocalRepository(args.repo_dir)
    return repository, args.namespace or make_namespace("local", repository.root.name)


def main(argv=None):
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    # Set log level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        settings = get_settings()
        repository, namespace = open_repository(args, settings)
    except RepoContextError as e:
        logger.error(str(e))
        sys.exit(1)

    # Initialize pipeline
    try:
        pipeline = ContextPipeline(repository, settings, namespace)
    except Exception as e:
        logger.error(f"Failed to initialize pipeline: {e}")
        sys.exit(1)

    logger.info("=" * 80)
    logger.info(f"Question: {args.question}")
    logger.info(f"Repository: {repository.root} (namespace {namespace})")
    logger.info("=" * 80)

    # Run pipeline
    try:
        result = pipeline.run(args.question, budget=args.budget, trace=args.trace)
        package, _ = pipeline.pack(args.question, result.context)
    except Exception as e:
        logger.error(f"Pipeline failed: {e}", exc_info=True)
        sys.exit(1)
    index = result.index

    print("\n" + "=" * 80)
    print(f"SELECTION ({result.selection.kind}, intent={result.classification.intent})")
    print("=" * 80)
    for i, path in enumerate(result.selection.files, 1):
        print(f"[{i}] {path}")
    print()

    print("=" * 80)
    print("CONTEXT")
    print("=" * 80)
    print(format_context_index(index))
    print(f"Tokens:     {format_token_count(result.context_tokens)} ({token_warning_level(package.total_tokens, settings.MODEL_CONTEXT_WINDOW)})")
    print(f"Prompt:     {format_token_count(package.total_tokens)} of {format_token_count(settings.MODEL_CONTEXT_WINDOW)}")
    print(f"Truncated:  {result.truncated}")
    print()

    if args.show_context:
        print(result.context)
        print()

    validation = None
    if args.answer_file:
        try:
            with open(args.answer_file, 'r', encoding='utf-8') as f:
                answer = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read answer file {args.answer_file}: {e}")
            sys.exit(1)
        validation = pipeline.validate_answer(answer, index)
        print("=" * 80)
        print(f"CITATIONS ({len(parse_citations(answer))} found)")
        print("=" * 80)
        print("Valid" if validation.valid else "\n".join(validation.errors))
        print()

    print("=" * 80)
    print("TIMING / CACHE")
    print("=" * 80)
    timing = result.timing_ms
    print(f"Tree:       {timing.get('tree_ms', 0):>6} ms")
    print(f"Select:     {timing.get('select_ms', 0):>6} ms")
    print(f"Assemble:   {timing.get('assemble_ms', 0):>6} ms")
    for name, stats in result.cache_stats.items():
        print(f"{name:<11} hits={stats.get('hits', 0)} misses={stats.get('misses', 0)}")
    print()

    if args.output:
        diagnostics = {
            "question": args.question,
            "namespace": namespace,
            "intent": result.classification.intent,
            "keywords": result.classification.keywords,
            "selection": result.selection.model_dump(),
            "index": {path: info.model_dump() for path, info in index.items()},
            "context_tokens": result.context_tokens,
            "truncated": result.truncated,
            "prompt_tokens": package.total_tokens,
            "tree_stats": tree_stats(pipeline.file_tree()),
            "timing_ms": result.timing_ms,
            "cache_stats": result.cache_stats,
            "validation": validation.model_dump() if validation else None,
        }
        try:
            with open(args.output, 'w', encoding='utf-8') as f:
                json.dump(diagnostics, f, indent=2)
            logger.info(f"Diagnostics saved to {args.output}")
        except OSError as e:
            logger.warning(f"Failed to save diagnostics: {e}")

    if validation is not None and not validation.valid:
        sys.exit(2)


if __name__ == "__main__":
    main()
