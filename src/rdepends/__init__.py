"""The `rdepends` APIs."""

__version__ = "0.1.0"

from importlib import import_module
from pathlib import Path
from pkgutil import iter_modules

from .dependents import DependentGraphBuilder, build_dependents
from .graph import DependentGraph
from .index import IndexStore, IndexUnavailableError, load
from .models import DependencyConstraint, ParseError, ReleaseRecord, Requirement, node_key
from .resolver import ConstraintResolver, ResolutionError, is_known_resolver, resolver_by_name, resolvers

# Automatically load all modules in the `rdepends` package,
# so all ConstraintResolvers will auto-register themselves:
package_dir = Path(__file__).resolve().parent
for _, module_name, _ in iter_modules([str(package_dir)]):  # type: ignore
    # import the module and iterate through its attributes
    if module_name != "__main__":
        module = import_module(f"{__name__}.{module_name}")
