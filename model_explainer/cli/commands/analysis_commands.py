"""Interpretation CLI commands."""

import click

from ...config import COMPARISON_MODES, ExplainerConfig
from ...data.dataset import Dataset
from ...interpretation.partial_dependence import PartialDependenceComputer
from ...interpretation.permutation_importance import PermutationImportanceComputer
from ...interpretation.report import save_report
from ...metrics.losses import LOSSES
from ...models.loader import load_predictor
from ...utils.exceptions import ModelExplainerError


def _load(model_path, data_path, target):
    dataset = Dataset.from_csv(data_path, target=target)
    predictor = load_predictor(model_path, feature_names=dataset.feature_names)
    return predictor, dataset


@click.command()
@click.option('--model', 'model_path', required=True, type=click.Path(exists=True, dir_okay=False),
              help='Serialized model (.joblib, .pkl, .pt, .pth)')
@click.option('--data', 'data_path', required=True, type=click.Path(exists=True, dir_okay=False),
              help='CSV file with numeric columns')
@click.option('--feature', 'features', multiple=True, required=True,
              help='Feature to sweep (repeat for several)')
@click.option('--grid-size', type=int, help='Number of grid points per feature')
@click.option('--target', help='Target column, excluded from model inputs')
@click.option('--output', help='Output file path for report (without extension)')
@click.option('--n-jobs', type=int, help='Parallel workers across features')
@click.pass_obj
def pdp(config, model_path, data_path, features, grid_size, target, output, n_jobs):
    """Compute partial dependence of the predictions on each feature."""
    config = config or ExplainerConfig()

    try:
        config = config.updated(grid_size=grid_size, n_jobs=n_jobs)
        predictor, dataset = _load(model_path, data_path, target)
        computer = PartialDependenceComputer(grid_size=config.grid_size, n_jobs=config.n_jobs)
        results = computer.compute_many(predictor, dataset, list(features))
    except (ModelExplainerError, FileNotFoundError) as e:
        raise click.ClickException(str(e))

    for feature, result in results.items():
        click.echo(f"\nPartial Dependence: {feature}")
        click.echo("=" * 40)
        click.echo(f"{'Value':>15} {'Mean prediction':>20}")
        click.echo("-" * 40)
        for value, yhat in result:
            click.echo(f"{value:>15.4f} {yhat:>20.4f}")

    if output:
        save_report(results, output)
        click.echo(f"\nReport saved to {output}.*")


@click.command()
@click.option('--model', 'model_path', required=True, type=click.Path(exists=True, dir_okay=False),
              help='Serialized model (.joblib, .pkl, .pt, .pth)')
@click.option('--data', 'data_path', required=True, type=click.Path(exists=True, dir_okay=False),
              help='CSV file with numeric columns')
@click.option('--target', required=True, help='Ground-truth column')
@click.option('--feature', 'features', multiple=True,
              help='Feature to score (repeat for several; default: all non-target columns)')
@click.option('--metric', type=click.Choice(sorted(LOSSES)), help='Loss function')
@click.option('--n-repeats', type=int, help='Shuffles per feature')
@click.option('--sample-fraction', type=float, help='Share of rows to evaluate, in (0, 1]')
@click.option('--comparison', type=click.Choice(COMPARISON_MODES), help='How permuted loss is compared to baseline')
@click.option('--seed', type=int, help='Random seed')
@click.option('--top', type=int, help='Only display the N most important features')
@click.option('--output', help='Output file path for report (without extension)')
@click.option('--n-jobs', type=int, help='Parallel workers across features')
@click.pass_obj
def vip(config, model_path, data_path, target, features, metric, n_repeats, sample_fraction,
        comparison, seed, top, output, n_jobs):
    """Compute permutation importance for each feature."""
    config = config or ExplainerConfig()

    try:
        config = config.updated(
            metric=metric, n_repeats=n_repeats, sample_fraction=sample_fraction,
            comparison=comparison, seed=seed, n_jobs=n_jobs,
        )
        predictor, dataset = _load(model_path, data_path, target)
        computer = PermutationImportanceComputer(
            n_repeats=config.n_repeats,
            sample_fraction=config.sample_fraction,
            comparison=config.comparison,
            seed=config.seed,
            n_jobs=config.n_jobs,
        )
        result = computer.compute(
            predictor, dataset, target, loss_fn=config.metric,
            features=list(features) or None,
        )
    except (ModelExplainerError, FileNotFoundError) as e:
        raise click.ClickException(str(e))

    click.echo(f"\nPermutation Importance ({config.metric}, {config.comparison})")
    click.echo("=" * 60)
    click.echo(f"Rows evaluated: {result.n_rows}")
    click.echo(f"Baseline loss: {result.baseline_loss:.4f}")
    click.echo(f"\n{'Rank':<5} {'Feature':<30} {'Importance':>12} {'StDev':>10}")
    click.echo("-" * 60)

    ranked = result.top(top) if top else result.ranked()
    for rank, (feature, score) in enumerate(ranked, 1):
        click.echo(f"{rank:<5} {feature[:29]:<30} {score:>12.4f} {result.std[feature]:>10.4f}")

    if output:
        save_report(result, output)
        click.echo(f"\nReport saved to {output}.*")
