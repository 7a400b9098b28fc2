"""qcli -- project-scaffolding CLI core.

Two loosely coupled parts:

* ``qcli.config`` resolves ``quillysoft-cli.json`` (search, defaults,
  root auto-detection, save).
* ``qcli.scaffolder`` renders named templates against a render model.
"""

__version__ = "1.0.0"
