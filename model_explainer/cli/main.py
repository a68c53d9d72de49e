"""Command line interface for Model Explainer."""

import click

from ..config import load_config
from ..utils.exceptions import ModelExplainerError
from ..utils.logging import setup_logging
from .commands.analysis_commands import pdp, vip


@click.group()
@click.version_option(version="0.1.0", prog_name="model-explainer")
@click.option('--log-level', default='WARNING',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
              help='Logging level')
@click.option('--log-file', help='Also write logs to this file')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              help='YAML file with default parameters')
@click.pass_context
def main(ctx, log_level, log_file, config_path):
    """Partial dependence and permutation importance for fitted models."""
    setup_logging(level=log_level, log_file=log_file)
    try:
        ctx.obj = load_config(config_path)
    except ModelExplainerError as e:
        raise click.ClickException(str(e))


main.add_command(pdp)
main.add_command(vip)


if __name__ == "__main__":
    main()
