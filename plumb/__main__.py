from plumb.cli.main import app

app()
