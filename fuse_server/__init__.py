"""
FUSE transport for kvmount.

operations and server need the optional pyfuse3 dependency; inodes does not.
"""
