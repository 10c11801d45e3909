#! /usr/bin/env python3

# This is the official version of rsyncm
__version__ = '1.0.0'

__long_description__ = '''
    rsync Multi v%s. Run one rsync transfer against many hosts at once.

    rsyncm options go before "--", everything after it is handed to rsync.
    The word HOST in those arguments is replaced with each host's name.
    Without "--" every argument is handed to rsync and only the defaults
    are used.

    Examples:
        Push a directory to two hosts:
            rsyncm -m alpha -m beta -- src/ HOST:/dest/

        Push to every host listed in the "datanodes" group, 10 at a time:
            rsyncm -g datanodes -P 10 -- conf/ HOST:/etc/hadoop/conf/

        Pull a log from each host into its own directory:
            rsyncm -g web -R -- -a HOST:/var/log/app.log logs/HOST/

    Host groups are files of whitespace separated host names, read from
    $RSYNCM_GROUP_DIR (default /etc/dsh/group).  Set $RSYNCM_RSYNC to use
    another rsync executable.

    Exit status:
        0   every transfer succeeded
        1   one or more transfers failed
        2   nothing was transferred: bad options, no hosts, no rsync
            arguments or an unknown group
    ''' % (__version__)
