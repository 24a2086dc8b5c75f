from shellprompt.cli import app

app()
