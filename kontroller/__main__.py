"""
CLI entry point, when used as a module: `python -m kontroller`.

Useful for debugging in the IDEs (use the start-mode "Module", module "kontroller").
"""
from kontroller import cli

if __name__ == '__main__':
    cli.main()
