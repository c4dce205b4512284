"""Built-in CLI sub-commands for platformclient.

* :mod:`~platformclient.commands.auth` -- log in, log out, inspect tokens.
* :mod:`~platformclient.commands.config` -- view and modify user settings.
* :mod:`~platformclient.commands.request` -- send one authenticated request.
* :mod:`~platformclient.commands.common` -- connector construction and
  error-to-exit-code mapping shared by the commands.
"""
