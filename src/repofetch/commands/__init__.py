"""Built-in CLI sub-commands for repofetch.

* :mod:`~repofetch.commands.fetch` -- ``get`` and ``import``, registered
  directly on the root app.
* :mod:`~repofetch.commands.config` -- the ``config`` sub-application.
"""
