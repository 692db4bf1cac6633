from catalog_mirror.cli import run_sync

run_sync()
