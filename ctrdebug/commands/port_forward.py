import argparse, os

from docker.errors import DockerException, NotFound

from ctrdebug import Context
from ctrdebug.dockertools import primary_ip
from ctrdebug.forwarding import parse_forwardings
from ctrdebug.relay import RELAY_IMAGE, Orchestrator, SocatLauncher
from ctrdebug.report import OUTPUT_FORMATS, OUTPUT_TEXT, Reporter
from ctrdebug.teardown import SignalSource, TeardownController

NAME = 'port-forward'
HELP = '"publish" one or more ports of an already running container'

def configure_argparser(parser):
    defaultImage = os.environ.get('CTRDEBUG_RELAY_IMAGE', RELAY_IMAGE)
    parser.add_argument('target', metavar='CONTAINER', help='Running container to forward to')
    parser.add_argument('forwardings', metavar='[[LOCAL_IP:]LOCAL_PORT:]TARGET_PORT', nargs=argparse.REMAINDER,
        help='Forwarding specs: TARGET_PORT, LOCAL_PORT:TARGET_PORT, TARGET_IP:TARGET_PORT, '
             'LOCAL_PORT:TARGET_IP:TARGET_PORT or LOCAL_IP:LOCAL_PORT:TARGET_IP:TARGET_PORT')
    parser.add_argument('-q', '--quiet', help='Suppress verbose output', action='store_true')
    parser.add_argument('-o', '--output', help=f'Output format (default: {OUTPUT_TEXT})', choices=OUTPUT_FORMATS, default=OUTPUT_TEXT)
    parser.add_argument('--relay-image', metavar='IMAGE', help=f'Port-forwarder image (default: {defaultImage})', default=defaultImage)

def execute(ctx: Context, signals=None):
    args = ctx.args
    if not args.forwardings:
        ctx.abort('At least one forwarding must be specified')

    try:
        target = ctx.docker.containers.get(args.target)
    except NotFound:
        ctx.abort(f'Container {args.target} not found')
    except DockerException as err:
        ctx.abort(f'Cannot inspect container {args.target}: {err}')

    target_ip = primary_ip(target)
    forwardings = parse_forwardings(target_ip, args.forwardings)

    reporter = Reporter(args.output, out=ctx.print_out)
    orchestrator = Orchestrator(SocatLauncher(ctx.docker, args.relay_image), aux=ctx.print_aux)
    session = orchestrator.start(forwardings)

    rule = session.rules[0]
    reporter.report(target.name, rule.target_ip, session.bindings)

    if signals is None:
        signals = SignalSource().install()
    try:
        TeardownController(session, signals, aux=ctx.print_aux).run()
    finally:
        signals.restore()
