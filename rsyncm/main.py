#! /usr/bin/env python3
"""
This module allows the console to use rsyncm's functionality.

This module should only be run by the console!
"""

import shlex
import sys
from rsyncm.lib import (rsyncm, resolve_hosts, ConfigurationError,
        DispatchOptions, DEFAULT_FLAGS, SUCCESS, default_workers)

__all__ = ['main']

# Exit statuses
TRANSFER_FAILURE = 1
CONFIG_ERROR = 2

SEPARATOR = '--'
HELP_FLAGS = ('-h', '--help')


def split_arguments(args):
    """
    Separate rsyncm's options from rsync's arguments at the first "--".
    Without a "--" everything belongs to rsync.

    @returns: A tuple containing (rsyncm_args, rsync_args)
    @rtype: tuple
    """
    if SEPARATOR not in args:
        return ([], list(args))
    index = args.index(SEPARATOR)
    return (list(args[:index]), list(args[index+1:]))


def _positive_int(value):
    import argparse
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError('invalid int value: {!r}'.format(value))
    if number < 1:
        raise argparse.ArgumentTypeError('must be at least 1: {!r}'.format(value))
    return number


def get_argparse_args(args=None):
    """
    Get the arguments passed to this script when it was run.

    @param args: A list of arguments passed in the console.
    @type args: list

    @returns: A tuple containing (args, template)
    @rtype: tuple
    """
    from rsyncm._info import __version__, __long_description__
    import argparse

    if args is None:
        args = sys.argv[1:]
    options, template = split_arguments(args)
    # A leading help flag is honored even without a separator
    if SEPARATOR not in args and args[:1] and args[0] in HELP_FLAGS:
        options, template = args[:1], []

    parser = argparse.ArgumentParser(
            prog='rsyncm',
            usage='%(prog)s [-h] [-v] [-m MACHINE] [-g GROUP] [-P PROCS] [-R] -- RSYNC_ARGS...',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=__long_description__)
    parser.add_argument('-v', dest='verbose', action='store_true', default=False,
            help='Show each transfer and a summary of failures.  Also passes -v to rsync.')
    parser.add_argument('-m', dest='machines', action='append', default=[],
            metavar='MACHINE',
            help='Transfer with this host.  May be repeated.')
    parser.add_argument('-g', dest='groups', action='append', default=[],
            metavar='GROUP',
            help='Transfer with every host in this group.  May be repeated.')
    parser.add_argument('-P', dest='workers', type=_positive_int,
            default=default_workers, metavar='PROCS',
            help='Run at most this many transfers at once. (default: %(default)s)')
    parser.add_argument('-R', dest='raw', action='store_true', default=False,
            help='Do not pass the default flags ({}) to rsync.'.format(' '.join(DEFAULT_FLAGS)))
    parser.add_argument('--version', action='version', version='%(prog)s '+__version__)
    return (parser.parse_args(options), template)


def build_options(args, template):
    """
    Resolve the hosts and gather everything a run needs.

    @raises ConfigurationError: When there is nothing to transfer or nowhere
        to transfer it.
    """
    if not template:
        raise ConfigurationError('no rsync arguments specified')
    hosts = resolve_hosts(args.machines, args.groups)
    return DispatchOptions(
            hosts=tuple(hosts),
            template=tuple(template),
            workers=args.workers,
            default_flags=() if args.raw else tuple(DEFAULT_FLAGS),
            verbose=args.verbose,
            tool=None,
            )


def _print_outcome(outcome, file=sys.stderr):
    print('rsyncm: {host}({status}): {cmd}'.format(
        host=outcome['host'],
        status=outcome['status'],
        cmd=' '.join(shlex.quote(i) for i in outcome['cmd'])), file=file)


def summarize(outcomes, verbose=False, file=sys.stderr):
    """
    Get the exit status of a run.  When verbose, list each failed host.

    @param outcomes: The results yielded by rsyncm.
    @type outcomes: list

    @returns: 0 when every host succeeded, otherwise TRANSFER_FAILURE.
    @rtype: int
    """
    failed = [i for i in outcomes if i['status'] != SUCCESS]
    if verbose:
        print('rsyncm: {} of {} transfers succeeded'.format(
            len(outcomes) - len(failed), len(outcomes)), file=file)
        for outcome in failed:
            print('rsyncm: failed: {host} ({status}, return code {return_code})'.format(
                **outcome), file=file)
            if outcome.get('traceback'):
                print(outcome['traceback'].rstrip(), file=file)
    return TRANSFER_FAILURE if failed else 0


def main(args=None):
    """
    Run rsyncm using console provided arguments.

    This should only be run using a console!
    """
    args, template = get_argparse_args(args)
    try:
        options = build_options(args, template)
    except ConfigurationError as error:
        print('rsyncm: error: {}'.format(error), file=sys.stderr)
        sys.exit(CONFIG_ERROR)

    outcomes = []
    for outcome in rsyncm(options.hosts, options.template,
            default_flags=options.default_flags,
            verbose=options.verbose,
            workers=options.workers,
            tool=options.tool):
        if options.verbose:
            _print_outcome(outcome, file=sys.stderr)
        outcomes.append(outcome)

    # Exit with non-zero when there is a failure
    sys.exit(summarize(outcomes, options.verbose, file=sys.stderr))


if __name__ == '__main__':
    main()
