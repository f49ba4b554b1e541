"""Main CLI application using Cyclopts."""

import cyclopts

from wsi.cli.commands import account, db, pipeline, settings, url

app = cyclopts.App(
    name="wsi",
    help="Web search indexing - quota-aware URL submission pipeline",
)

app.command(pipeline.serve, name="serve")
app.command(pipeline.run_now, name="run")
app.command(pipeline.status, name="status")

app.command(url.app, name="url")
app.command(account.app, name="account")
app.command(settings.app, name="settings")
app.command(db.app, name="db")
