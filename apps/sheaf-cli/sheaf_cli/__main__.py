from sheaf_cli.cli import app

app(prog_name="sheaf")
