from apex_coverage.cli import cli

if __name__ == "__main__":
    cli(prog_name="apex-coverage")
