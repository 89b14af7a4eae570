from autopilotsync.cli import app

app(prog_name="autopilotsync")
