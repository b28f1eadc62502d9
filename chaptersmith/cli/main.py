"""Main CLI entry point for ChapterSmith."""

import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from .. import __version__
from ..ai.book_generator import BookGenerator, run_revision_pass
from ..ai.categorizer import categorize_items
from ..ai.factory import PROVIDER_NAMES, create_provider, create_providers
from ..core.book import RunContext
from ..core.config import TargetPattern
from ..core.errors import ChapterSmithError
from ..core.metrics import RunMetrics
from ..editor.decisions import ConsoleDecisionSource, Operation, PolicyDecisionSource, fixed_policy
from ..editor.pattern_scanner import PatternScanner
from ..editor.revision_engine import RevisionEngine
from ..io.book_loader import BookLoader
from ..io.file_handler import FileHandler

logger = logging.getLogger(__name__)

DEFAULT_REWRITE_INSTRUCTION = "Rephrase the sentence to avoid the flagged pattern while keeping its meaning."


def setup_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', is_flag=True, help='Enable debug logging')
@click.option('--log-file', type=click.Path(dir_okay=False), help='Also write logs to this file')
@click.pass_context
def cli(ctx, verbose, log_file):
    """ChapterSmith - fragment-by-fragment book generation and multi-provider revision"""
    load_dotenv()
    setup_logging(verbose, log_file)
    ctx.ensure_object(dict)
    ctx.obj['file_handler'] = FileHandler()
    ctx.obj['book_loader'] = BookLoader(ctx.obj['file_handler'])


@cli.command()
@click.option('--outline', required=True, help='Outline text or path to an outline file')
@click.option('--instructions', help='Instructions text or path to an instructions file')
@click.option('--genre', default='', help='Genre of the book')
@click.option('--chapters', type=int, help='Number of chapters to generate')
@click.option('--fragments', type=int, help='Fragments per chapter')
@click.option('--provider', type=click.Choice(PROVIDER_NAMES), default='openai', show_default=True)
@click.option('--config', 'config_file', type=click.Path(exists=True, dir_okay=False), help='YAML configuration')
@click.option('--output', type=click.Path(dir_okay=False), default='book.md', show_default=True)
@click.option('--no-memory', is_flag=True, help='Generate each fragment without chapter memory')
@click.option('--recommendations', help='Revise each chapter against these recommendations (text or path)')
@click.pass_context
def generate(ctx, outline, instructions, genre, chapters, fragments, provider, config_file, output,
             no_memory, recommendations):
    """Generate a book from an outline"""
    try:
        loader = ctx.obj['book_loader']
        file_handler = ctx.obj['file_handler']
        config = loader.load_config(config_file)
        if chapters:
            config = replace(config, num_chapters=chapters)
        if fragments:
            config = replace(config, chapter_fragments=fragments)
        if no_memory:
            config = replace(config, use_memory=False)

        book = loader.load_book(outline, instructions, genre)
        metrics = RunMetrics()
        generator = BookGenerator(create_provider(provider, config, metrics), config)
        context = generator.generate(RunContext(book=book, metrics=metrics))

        if recommendations:
            recommendations = file_handler.read_text_or_path(recommendations)
            texts = [generator.revise_chapter(c.content, recommendations) for c in context.book.chapters]
            file_handler.write_file(output, "\n\n".join(texts) + "\n")
        else:
            file_handler.write_book(output, context.book)

        click.echo(f"✅ Book written to {output}")
        click.echo(metrics.summary())

    except ChapterSmithError as e:
        click.echo(f"❌ Error generating book: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--provider', 'providers', type=click.Choice(PROVIDER_NAMES), multiple=True,
              help='Scanning provider (repeatable)')
@click.option('--pattern', 'patterns', multiple=True, help='Pattern to scan for (repeatable; replaces configured ones)')
@click.option('--config', 'config_file', type=click.Path(exists=True, dir_okay=False), help='YAML configuration')
@click.option('--output', type=click.Path(dir_okay=False), help='Revised file (default: <input>.revised.md)')
@click.option('--auto', type=click.Choice(['keep', 'delete', 'rewrite']), help='Apply one decision to every match')
@click.option('--instruction', default=DEFAULT_REWRITE_INSTRUCTION, help='Rewrite instruction for --auto rewrite')
@click.option('--rewrite-provider', type=click.Choice(PROVIDER_NAMES), help='Provider for rewrites')
@click.option('--report', type=click.Path(dir_okay=False), help='Write merged matches as JSON')
@click.option('--no-split-exceptions', is_flag=True, help='Split after abbreviations and ellipses too')
@click.pass_context
def revise(ctx, input_file, providers, patterns, config_file, output, auto, instruction, rewrite_provider,
           report, no_split_exceptions):
    """Scan a chapter or book file for patterns and revise the matches"""
    try:
        file_handler = ctx.obj['file_handler']
        config = ctx.obj['book_loader'].load_config(config_file)
        targets = [TargetPattern(name=p) for p in patterns] if patterns else config.patterns
        metrics = RunMetrics()
        scanners = create_providers(list(providers) or ['openai'], config, metrics)
        rewriter = (create_provider(rewrite_provider, config, metrics) if rewrite_provider else scanners[0])

        if auto:
            operation = Operation.CHANGE if auto == 'rewrite' else Operation(auto)
            source = PolicyDecisionSource(fixed_policy(operation, instruction if auto == 'rewrite' else None))
        else:
            source = ConsoleDecisionSource()

        split_exceptions = not no_split_exceptions
        scanner = PatternScanner(scanners, targets, split_exceptions=split_exceptions)
        engine = RevisionEngine(source, provider=rewriter, max_rewrites=config.retry.max_rewrites,
                                split_exceptions=split_exceptions)

        revised, edits = [], []
        for title, text in file_handler.split_chapters(file_handler.read_file(input_file)):
            click.echo(f"🔍 Scanning {title or 'text'}")
            result = run_revision_pass(text, scanner, engine)
            revised.append(result.text)
            edits.extend({"chapter": title, **e.match.to_dict(), "operation": e.operation.value,
                          "applied": e.applied, "replacement": e.replacement} for e in result.edits)

        output = output or str(Path(input_file).with_suffix('.revised.md'))
        file_handler.write_file(output, "\n\n".join(revised) + "\n")
        if report:
            file_handler.write_json(report, edits)

        changed = sum(1 for e in edits if e["applied"] and e["operation"] != Operation.KEEP.value)
        click.echo(f"✅ {changed} of {len(edits)} matches revised; written to {output}")

    except ChapterSmithError as e:
        click.echo(f"❌ Error revising {input_file}: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('items_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--categories', required=True, help='Numbered category list (text or path)')
@click.option('--provider', type=click.Choice(PROVIDER_NAMES), default='openai', show_default=True)
@click.option('--config', 'config_file', type=click.Path(exists=True, dir_okay=False), help='YAML configuration')
@click.option('--output', type=click.Path(dir_okay=False), help='Write the categories as JSON')
@click.pass_context
def categorize(ctx, items_file, categories, provider, config_file, output):
    """Sort the lines of ITEMS_FILE into numbered categories"""
    try:
        file_handler = ctx.obj['file_handler']
        config = ctx.obj['book_loader'].load_config(config_file)
        items = [line.strip() for line in file_handler.read_file(items_file).splitlines() if line.strip()]
        categories = file_handler.read_text_or_path(categories)

        results = categorize_items(create_provider(provider, config, RunMetrics()), items, categories)
        for number in sorted(results):
            click.echo(f"{number}: {len(results[number])} items")
        if output:
            file_handler.write_json(output, {str(n): results[n] for n in sorted(results)})
        click.echo(f"✅ Categorized {len(items)} items")

    except ChapterSmithError as e:
        click.echo(f"❌ Error categorizing {items_file}: {e}", err=True)
        sys.exit(1)


def main():
    """Main entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()
