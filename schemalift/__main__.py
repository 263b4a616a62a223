from schemalift.cli.main import app

app()
