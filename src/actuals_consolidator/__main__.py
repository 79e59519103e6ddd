from actuals_consolidator import cli

cli.app()
