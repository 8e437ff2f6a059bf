import os

from regdrop.argparsers.baseparser import BaseParser
from regdrop.configs import drop as drop_config
from regdrop.dataservice.data_service import DataService
from regdrop.exceptions import RegDropError
from regdrop.selection.drop.variants import VARIANTS
from regdrop.selection.selector import RegDropSelector
from regdrop.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> BaseParser:
    parser = BaseParser(description="Reduce a regression training set (CSV) with DROP instance selection",
                        prog="regdrop-reduce")
    parser.add_argument('--input', '-i', type=str, required=True, help='Input CSV file')
    parser.add_argument('--output', '-o', type=str, required=True, help='Output CSV file for the retained rows')
    parser.add_argument('--target', '-t', type=str, default=drop_config.TARGET_COLUMN,
                        help='Name of the numeric target column')
    parser.add_drop_arguments(VARIANTS)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if not os.path.isfile(args.input):
        parser.parser.error(f"Input file not found: {args.input}")

    df = DataService.load_data(args.input)
    try:
        DataService.info_dataset(df, args.target)
        selector = RegDropSelector(variant=args.variant, n_neighbors=args.n_neighbors, alpha=args.alpha,
                                   beta=args.beta, normalize=not args.no_normalize, progress=args.progress)
        reduced = selector.select(df, target_col=args.target)
    except (RegDropError, KeyError, ValueError) as e:
        logger.error(f"[Reduce] {e}")
        return 1

    out_dir = os.path.dirname(args.output)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    DataService.export_data(reduced, args.output)
    logger.info(f"[Reduce] Saved {len(reduced)} rows to {args.output} "
                f"(cpu {selector.cpu_time:.2f}s, wall {selector.wall_time:.2f}s)")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
