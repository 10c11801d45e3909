#! /usr/bin/env python3
import collections
import os
import subprocess
import threading
import zmq
from traceback import format_exc

__all__ = ['rsyncm', 'expand', 'resolve_hosts', 'read_group',
        'ConfigurationError', 'DispatchOptions']
default_workers = 4

# Replaced with the host name in every pass-through argument
PLACEHOLDER = 'HOST'
# Handed to rsync for every host unless suppressed with -R
DEFAULT_FLAGS = ['-az',]
VERBOSE_FLAG = '-v'
# Host group files live here, one file per group
GROUP_DIR = '/etc/dsh/group'
RSYNC = 'rsync'

# Outcome statuses
SUCCESS = 'success'
FAILURE = 'failure'
LAUNCH_FAILURE = 'launch-failure'


class ConfigurationError(ValueError):
    """
    Raised when a run can not be started: no hosts, no transfer arguments, or
    an unknown host group.
    """


DispatchOptions = collections.namedtuple('DispatchOptions',
        ['hosts', 'template', 'workers', 'default_flags', 'verbose', 'tool'])


def read_group(name, group_dir=None):
    """
    Read the host names listed in the group file "name".  Hosts are separated
    by any whitespace and are returned in file order.

    @param name: The name of the group, this is also the file name.
    @type name: str

    @param group_dir: Look for the group file here.  Defaults to
        $RSYNCM_GROUP_DIR or GROUP_DIR.
    @type group_dir: str

    @returns: A list of host names.
    @rtype: list
    """
    if group_dir is None:
        group_dir = os.environ.get('RSYNCM_GROUP_DIR', GROUP_DIR)
    path = os.path.join(group_dir, name)
    try:
        with open(path) as group_file:
            return group_file.read().split()
    except (IOError, OSError):
        raise ConfigurationError('group not found: {}'.format(name))


def resolve_hosts(machines, groups, reader=read_group):
    """
    Build the ordered host list.  Explicit machines come first, then each
    group's hosts in the order the groups were given.  Only the first
    occurrence of a host is kept.

    @param machines: Hosts provided with -m.
    @type machines: list

    @param groups: Group names provided with -g.
    @type groups: list

    @param reader: Called with a group name, returns that group's hosts.
    @type reader: callable

    @returns: A list of unique host names.
    @rtype: list
    """
    candidates = list(machines or [])
    for group in groups or []:
        candidates.extend(reader(group))

    hosts = []
    seen = set()
    for host in candidates:
        if host and host not in seen:
            seen.add(host)
            hosts.append(host)

    if not hosts:
        raise ConfigurationError('no machines specified')
    return hosts


def expand(template, host):
    """
    Replace every PLACEHOLDER in each argument of "template" with "host".

        Example: (['-a', 'src/', 'HOST:/dest/'], 'foo') to
            ['-a', 'src/', 'foo:/dest/']
    """
    return [token.replace(PLACEHOLDER, host) for token in template]


def build_command(host, template, default_flags=None, verbose=False, tool=None):
    """
    Create the full rsync command for "host".
    """
    if tool is None:
        tool = os.environ.get('RSYNCM_RSYNC', RSYNC)
    cmd = [tool,]
    cmd.extend(default_flags or [])
    if verbose:
        cmd.append(VERBOSE_FLAG)
    cmd.extend(expand(template, host))
    return cmd


def popen(cmd): # pragma: no cover
    """
    Separating Popen call from transfer for testing.

    The child shares this process's stdout and stderr, so its output is shown
    as it is produced.
    """
    proc = subprocess.Popen(cmd,
            stdin=subprocess.DEVNULL,)
    return proc


# ZMQ url used to collect outcomes from the transfer threads
SINK_URL = 'inproc://sink'

def transfer(thread_num, context, host, cmd):
    """
    Run "cmd" for "host" and wait for it to exit.  Report the outcome via ZMQ
    (SINK_URL).

    @param context: Create all ZMQ sockets using this context.
    @type context: zmq.Context

    @param host: The host this transfer is for.
    @type host: str

    @param cmd: The complete rsync command.
    @type cmd: list

    @returns: None
    """
    result = {
            'thread_num':thread_num,
            'host':host,
            'cmd':cmd,
            }

    sink = context.socket(zmq.PUSH)
    sink.connect(SINK_URL)

    proc = None
    try:
        proc = popen(cmd)
        return_code = proc.wait()
    except Exception:
        # Never started, or lost track of it.  Either way this host failed.
        result.update({
                'status':LAUNCH_FAILURE if proc is None else FAILURE,
                'return_code':None,
                'traceback':format_exc(),
                })
    else:
        result.update({
                'status':SUCCESS if return_code == 0 else FAILURE,
                'return_code':return_code,
                })

    sink.send_pyobj(result)
    sink.close()


def rsyncm(hosts, template, default_flags=DEFAULT_FLAGS, verbose=False,
        workers=default_workers, tool=None):
    """
    Run rsync once for every host, "workers" at a time.  PLACEHOLDER in
    "template" is replaced with each host's name.

    This is a generator, each host's outcome is yielded as soon as its
    transfer exits.  Every host is attempted exactly once.

    @param hosts: The hosts to transfer to/from, in launch order.
    @type hosts: list

    @param template: The rsync arguments, may contain PLACEHOLDER.
    @type template: list

    @param default_flags: Passed to rsync before any other argument.
    @type default_flags: list

    @param verbose: Pass VERBOSE_FLAG to rsync.
    @type verbose: bool

    @param workers: The max amount of concurrent rsync processes.
    @type workers: int

    @param tool: Run this instead of rsync.
    @type tool: str

    @returns: A dict for each host containing its host, cmd, status and
        return_code.
    """
    if isinstance(hosts, str):
        hosts = [hosts,]
    hosts = list(hosts)
    template = list(template)
    if not hosts:
        raise ConfigurationError('no machines specified')
    if workers < 1:
        raise ValueError('workers must be at least 1, not {}'.format(workers))

    context = zmq.Context()
    # The outcome of each transfer is reported to this sink
    sink = context.socket(zmq.PULL)
    sink.bind(SINK_URL)

    threads = {}
    pending = iter(enumerate(hosts))
    try:
        next_host = next(pending, None)
        while next_host or threads:
            # Fill any free slots, in host order
            while next_host and len(threads) < workers:
                thread_num, host = next_host
                cmd = build_command(host, template, default_flags, verbose,
                        tool)
                thread = threading.Thread(target=transfer,
                        args=(thread_num, context, host, cmd))
                thread.start()
                threads[thread_num] = thread
                next_host = next(pending, None)

            # Wait for a transfer to finish, this frees its slot
            result = sink.recv_pyobj()
            threads.pop(result['thread_num']).join()
            yield result
    finally:
        # Transfers can not be cancelled, let the running ones finish.
        while threads:
            result = sink.recv_pyobj()
            threads.pop(result['thread_num']).join()
        sink.close()
        context.term()
