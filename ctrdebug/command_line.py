import argparse
import logging
import os

from ctrdebug import commands, context

def build_parser():
    parser = argparse.ArgumentParser(description='Debug running containers without touching them')
    defaultHost=os.environ.get('CTRDEBUG_HOST')
    parser.add_argument('-H', '--hostname', metavar='HOST', help=f'Target docker host (default: {defaultHost or "from environment"})', default=defaultHost)
    parser.add_argument('--debug', help='Enable debug log', action='store_true')

    sub = parser.add_subparsers(help='sub-command', metavar='COMMAND', required=True, dest='command')
    for cmd in commands.commands:
        cmdname = getattr(cmd, 'NAME', cmd.__name__.split('.')[-1])
        cmdparser = sub.add_parser(cmdname, help=getattr(cmd, 'HELP', None))
        if hasattr(cmd, 'configure_argparser'):
            cmd.configure_argparser(cmdparser)
        cmdparser.set_defaults(handler=cmd.execute)
    return parser

def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s')
    ctx = context.Context(args)
    ctx.run(args.handler)
