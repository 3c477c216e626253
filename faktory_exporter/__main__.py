"""Entry point for running the exporter as a module: python -m faktory_exporter."""

from faktory_exporter.service import run

if __name__ == "__main__":
    run()
