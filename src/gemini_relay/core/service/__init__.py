"""Request handling for the relay.

Import from the submodules directly (``relay``, ``deps``, ``metrics``);
the store and completion packages import ``metrics`` from here.
"""
