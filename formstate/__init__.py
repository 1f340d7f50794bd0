"""formstate: form input validation and submission-state engine.

formstate tracks, for a fixed set of named fields:
- The current value, touched flag and error of every field
- Field rules, including cross-field ones such as password confirmation
- An Editing/Submitted lifecycle with a timed reset after a successful submit
- Events a presentation layer can subscribe to

Rendering is left to the caller: the core exposes data and accepts events.

Basic usage:
    >>> from formstate import FormRuntime
    >>> from formstate.scheduler import ManualScheduler
    >>> form = FormRuntime(scheduler=ManualScheduler())
    >>> form.on_value_change("email", "a@b")
    >>> form.on_blur("email")
    >>> print(form.field("email").error.message)
    Please enter a valid email address
"""

__version__ = "0.1.0"

# Version info
VERSION = (0, 1, 0)

# Core exports
from formstate.runtime import FormRuntime

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "FormRuntime",
]
