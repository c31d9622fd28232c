"""Command-line interface for pq2sparql."""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from . import __version__, DBPEDIA_ENDPOINT
from .errors import GatewayUnavailable, Pq2SparqlError


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


_ENGINE_OPTIONS = [
    click.option(
        "--endpoint",
        type=str,
        default=None,
        help=f"SPARQL endpoint (default: $PQ2SPARQL_ENDPOINT or {DBPEDIA_ENDPOINT}).",
    ),
    click.option(
        "--data",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="Local RDF file to query instead of an endpoint.",
    ),
    click.option(
        "--wordnet/--no-wordnet",
        default=False,
        help="Expand words with WordNet (needs the nltk wordnet corpus).",
    ),
    click.option(
        "--lexicon",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="JSON file with a static synonym mapping.",
    ),
    click.option(
        "--verbose", "-V",
        is_flag=True,
        help="Show detailed output (debug logging).",
    ),
]


def engine_options(func):
    """Options shared by the commands that run the engine."""
    for option in reversed(_ENGINE_OPTIONS):
        func = option(func)
    return func


def _build_engine(endpoint: Optional[str], data: Optional[str], wordnet: bool, lexicon: Optional[str]):
    from .config import EngineConfig
    from .engine import QuerySynthesisEngine

    synonyms = None
    if lexicon:
        from .lexicon import StaticSynonymProvider
        synonyms = StaticSynonymProvider.from_json(lexicon)
    elif wordnet:
        from .lexicon.wordnet import WordNetSynonymProvider
        synonyms = WordNetSynonymProvider()

    config = EngineConfig.from_env(endpoint=endpoint)
    if data:
        from .kb.graph import GraphGateway
        gateway = GraphGateway.from_file(data, config=config.gateway)
        return QuerySynthesisEngine(gateway, synonyms=synonyms, config=config)
    return QuerySynthesisEngine.from_endpoint(endpoint, synonyms=synonyms, config=config)


def _fail(e: Exception) -> None:
    if isinstance(e, GatewayUnavailable):
        click.secho(f"Knowledge base unavailable: {e}", fg="red", err=True)
        sys.exit(2)
    click.secho(f"Error: {e}", fg="red", err=True)
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option(
    "--version", "-v",
    is_flag=True,
    help="Show version and exit.",
)
@click.pass_context
def main(ctx: click.Context, version: bool):
    """
    PQ2SPARQL: Turn pseudo queries into SPARQL queries that return data.

    A pseudo query is a JSON file such as:

    \b
        {"focus": "book",
         "variables": {"book": "unknown"},
         "triples": [["?book", "author", "Dan Brown"]]}

    \b
    Examples:
        pq2sparql answer books.json
        pq2sparql candidates books.json --top-k 5
        pq2sparql sparql books.json -o query.sparql
        pq2sparql evaluate qald.json --data kb.ttl
    """
    if version:
        click.echo(f"pq2sparql version {__version__}")
        ctx.exit()

    # If no subcommand, show help
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--json", "as_json",
    is_flag=True,
    help="Print the result as JSON (query with derivation traces and answers).",
)
@engine_options
def answer(
    file: str,
    as_json: bool,
    endpoint: Optional[str],
    data: Optional[str],
    wordnet: bool,
    lexicon: Optional[str],
    verbose: bool,
):
    """
    Answer a pseudo query.

    Prints the winning SPARQL query and the bindings of the focus variable.
    """
    from .io import load_pseudo_query, query_to_dict

    _configure_logging(verbose)
    try:
        pseudo_query = load_pseudo_query(file)
        engine = _build_engine(endpoint, data, wordnet, lexicon)
        result = engine.answer(pseudo_query)
    except Pq2SparqlError as e:
        _fail(e)
        return

    if as_json:
        output = {
            "answered": result.answered,
            "num_candidates": result.num_candidates,
            "candidates_tried": result.candidates_tried,
        }
        if result.query is not None:
            output["query"] = query_to_dict(result.query, engine.gateway.shorten_uri)
            output["sparql"] = result.sparql
            output["answers"] = [
                {"value": b.value, "type": b.type.value, "label": b.label} for b in result.answers
            ]
        click.echo(json.dumps(output, indent=2, ensure_ascii=False))
        return

    if verbose:
        click.echo(f"Pseudo query:\n{pseudo_query}")
        click.echo(f"Candidates: {result.num_candidates}, tried: {result.candidates_tried}")
        click.echo()

    if not result.answered:
        click.secho("No answer found", fg="yellow")
        sys.exit(1)

    click.echo(f"--- SPARQL Query (score: {result.score:.6f}) ---")
    click.echo(result.sparql)
    click.echo("-------------------")
    for binding in result.answers:
        if binding.label:
            click.echo(f"{binding.value}  ({binding.label})")
        else:
            click.echo(binding.value)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--top-k", "-k",
    type=int,
    default=10,
    help="Number of candidates to show.",
)
@engine_options
def candidates(
    file: str,
    top_k: int,
    endpoint: Optional[str],
    data: Optional[str],
    wordnet: bool,
    lexicon: Optional[str],
    verbose: bool,
):
    """
    Show the ranked query candidates (without executing them).

    Useful for debugging and understanding the mapping.
    """
    from .io import load_pseudo_query

    _configure_logging(verbose)
    try:
        pseudo_query = load_pseudo_query(file)
        engine = _build_engine(endpoint, data, wordnet, lexicon)
        ranked = engine.build_ranked_query_candidates(pseudo_query)
    except Pq2SparqlError as e:
        _fail(e)
        return

    click.echo(f"{len(ranked)} candidates")
    click.echo()
    for i, candidate in enumerate(ranked[:top_k], 1):
        click.echo(f"--- Candidate {i} (score: {candidate.score:.6f}) ---")
        click.echo(engine.to_sparql(candidate.value))
        for triple in candidate.value.triples:
            for element in triple.elements():
                if len(element.trace) > 1:
                    click.echo(f"  {' -> '.join(element.trace)}")
        click.echo()


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=None,
    help="Output file for the SPARQL query.",
)
@engine_options
def sparql(
    file: str,
    output: Optional[str],
    endpoint: Optional[str],
    data: Optional[str],
    wordnet: bool,
    lexicon: Optional[str],
    verbose: bool,
):
    """Print the SPARQL of the best candidate that returns data."""
    from .io import load_pseudo_query

    _configure_logging(verbose)
    try:
        pseudo_query = load_pseudo_query(file)
        engine = _build_engine(endpoint, data, wordnet, lexicon)
        best = engine.select_best(pseudo_query)
    except Pq2SparqlError as e:
        _fail(e)
        return

    if not best:
        click.secho("No answer found", fg="yellow", err=True)
        sys.exit(1)

    query = engine.to_sparql(best)
    click.echo(query)

    # Save to file if requested
    if output:
        Path(output).write_text(query, encoding="utf-8")
        click.echo(f"Query saved to: {output}", err=True)


@main.command()
@click.argument("dataset", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=None,
    help="Save the report as JSON.",
)
@engine_options
def evaluate(
    dataset: str,
    output: Optional[str],
    endpoint: Optional[str],
    data: Optional[str],
    wordnet: bool,
    lexicon: Optional[str],
    verbose: bool,
):
    """
    Evaluate the engine on a QALD-style dataset.

    Each entry holds a pseudo query and its gold answers.
    """
    from .evaluation import evaluate_dataset, load_dataset, print_report, save_report

    _configure_logging(verbose)
    try:
        entries = load_dataset(dataset)
        engine = _build_engine(endpoint, data, wordnet, lexicon)
        report = evaluate_dataset(engine, entries)
    except Pq2SparqlError as e:
        _fail(e)
        return

    print_report(report)
    if output:
        save_report(report, output)
        click.echo(f"\nReport saved to: {output}")


@main.command("validate")
@click.argument("file_or_query")
def validate_command(file_or_query: str):
    """
    Check the syntax of a SPARQL query.

    FILE_OR_QUERY can be a file path or a SPARQL query string.
    """
    from .kb.syntax import validate_syntax

    # Determine if input is a file or query string
    if Path(file_or_query).exists():
        query = Path(file_or_query).read_text(encoding="utf-8")
    else:
        query = file_or_query

    is_valid, error = validate_syntax(query)
    if is_valid:
        click.secho("Syntax: OK", fg="green")
    else:
        click.secho(f"Syntax: FAILED - {error}", fg="red")
        sys.exit(1)


if __name__ == "__main__":
    main()
