import argparse

from regdrop.configs import drop as drop_config


class BaseParser:
    def __init__(self, description: str, prog: str | None = None):
        self.parser = argparse.ArgumentParser(description=description, prog=prog)
        self.parser.add_argument("--log-level", "-L", type=str, choices=drop_config.LOG_LEVELS,
                                 default=drop_config.DEFAULT_LOG_LEVEL, help="Set the logging level")

    def add_argument(self, *args, **kwargs):
        self.parser.add_argument(*args, **kwargs)

    def add_drop_arguments(self, variants):
        """Options shared by every command that runs a DROP variant."""
        group = self.parser.add_argument_group("DROP")
        group.add_argument('--variant', '-v', type=str, default=drop_config.DEFAULT_VARIANT,
                           choices=list(variants), help='DROP variant to run')
        group.add_argument('--n-neighbors', '-k', type=int, default=drop_config.DEFAULT_N_NEIGHBORS,
                           help='Number of nearest neighbours (odd, >= 1)')
        group.add_argument('--alpha', '-a', type=float, default=drop_config.DEFAULT_ALPHA,
                           help='Error tolerance / ENN-Reg leniency in [0, 100]')
        group.add_argument('--beta', '-b', type=float, default=drop_config.DEFAULT_BETA,
                           help='Enemy threshold weight used for ordering, in [0, 100]')
        group.add_argument('--no-normalize', action='store_true',
                           help='Measure distances on raw attributes instead of min-max scaled ones')
        group.add_argument('--progress', action='store_true', help='Show a progress bar')

    def parse_args(self, args=None):
        return self.parser.parse_args(args)
