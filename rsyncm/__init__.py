"""
This module can be used to rsync with multiple hosts at once.

Example:
    from rsyncm.lib import rsyncm

    for result in rsyncm(['alpha', 'beta'], ['src/', 'HOST:/dest/']):
            print(result)

    {
        'thread_num': 0,
        'host': 'alpha',
        'cmd': ['rsync', '-az', 'src/', 'alpha:/dest/'],
        'status': 'success',
        'return_code': 0,
        }
    {
        'thread_num': 1,
        'host': 'beta',
        'cmd': ['rsync', '-az', 'src/', 'beta:/dest/'],
        'status': 'failure',
        'return_code': 23,
        }
"""
