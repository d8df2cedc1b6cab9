#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
parse is installed as an executable console_script with this package.

"""
from argparse import ArgumentParser
from datetime import date, datetime
import json
import logging
import sys

from fitio import fit
from fitio.fit import _options


log = logging.getLogger(__name__)


def json_default(obj):
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, bytes):
        return obj.hex()
    raise TypeError('%r is not JSON serializable' % obj)


def make_parser():
    parser = ArgumentParser(description='decode a fit file')

    parser.add_argument('input',
                        type=str,
                        help='fit file to read')
    parser.add_argument('--output',
                        type=str,
                        metavar='filename',
                        default=None,
                        help='optional; file to write to')
    parser.add_argument('--format',
                        type=str,
                        default='json',
                        help='optional; json (everything) or csv (records)',
                        choices=('json', 'csv'))
    parser.add_argument('--mode',
                        type=str,
                        default='list',
                        choices=_options.MODES)
    parser.add_argument('--speed-unit',
                        type=str,
                        default='m/s',
                        choices=tuple(_options.SPEED_UNITS))
    parser.add_argument('--length-unit',
                        type=str,
                        default='m',
                        choices=tuple(_options.LENGTH_UNITS))
    parser.add_argument('--temperature-unit',
                        type=str,
                        default='celsius',
                        choices=tuple(_options.TEMPERATURE_UNITS))
    parser.add_argument('--elapsed',
                        action='store_true',
                        help='add elapsed_time to record messages')
    parser.add_argument('--strict',
                        action='store_true',
                        help='stop at the first problem with the file')
    parser.add_argument('--verbose', '-v',
                        action='count',
                        default=0)
    return parser


def parse(argv=None):

    args = make_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING - 10 * min(args.verbose, 2),
        format='%(levelname)s:%(name)s:%(message)s')

    # Script begins
    if args.format == 'csv':
        data = fit.read(args.input, force=not args.strict)
        text = data.to_csv(na_rep='NA', index_label='time', encoding='utf-8')
    else:
        options = fit.FitOptions(
            force=not args.strict,
            speed_unit=args.speed_unit,
            length_unit=args.length_unit,
            temperature_unit=args.temperature_unit,
            elapsed_record_field=args.elapsed,
            mode=args.mode)

        with open(args.input, 'rb') as f:
            activity = fit.parse(f.read(), options)

        log.info('decoded %r', activity)
        if activity.errors and not options.force:
            print(activity.errors[0], file=sys.stderr)
            return 1

        text = json.dumps(activity.to_dict(), default=json_default, indent=2)

    if args.output is None:
        print(text)
    else:
        with open(args.output, 'wt', encoding='utf-8') as out:
            out.write(text)

    return 0


if __name__ == '__main__':
    sys.exit(parse())
