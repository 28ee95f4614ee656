"""
Hierarchy closure module

Transitive ancestors and descendants of the classes of a frozen Model.
Only complete, non-template classes take part; results are cached for
the lifetime of the ClassHierarchy since the model no longer changes.
"""

from typing import Optional

from .model import Model, Class, BaseClassSpecifier


def participates(klass: Class) -> bool:
    """Complete, non-dependent classes (no namespaces, no templates)"""
    return klass.has_definition() and not klass.is_template and not klass.is_namespace


class ClassHierarchy:
    """Memoized ancestor/descendant closure over a Model"""

    def __init__(self, model: Model):
        self.model = model
        self._ancestors: dict[int, list[Class]] = {}
        self._descendants: dict[int, list[Class]] = {}

    def bases(self, klass: Class) -> list[BaseClassSpecifier]:
        return [b for b in klass.base_classes if participates(b.base_class)]

    def ancestors(self, klass: Class) -> list[Class]:
        """Depth-first ancestors; an ancestor reached by several paths is listed once per path"""
        key = id(klass)
        cached = self._ancestors.get(key)
        if cached is not None:
            return cached
        result: list[Class] = []
        if participates(klass):
            for base in self.bases(klass):
                result.append(base.base_class)
                result.extend(self.ancestors(base.base_class))
        self._ancestors[key] = result
        return result

    def descendants(self, klass: Class) -> list[Class]:
        """Every class of the model that has klass among its ancestors"""
        key = id(klass)
        cached = self._descendants.get(key)
        if cached is not None:
            return cached
        result = [c for c in self.model.classes.values()
                  if participates(c) and klass in self.ancestors(c)]
        self._descendants[key] = result
        return result

    def ancestor_paths(self, klass: Class, target: Class) -> list[list[BaseClassSpecifier]]:
        """Inheritance paths from klass up to target, depth-first order"""
        paths = []
        for base in self.bases(klass):
            if base.base_class is target:
                paths.append([base])
            for rest in self.ancestor_paths(base.base_class, target):
                paths.append([base] + rest)
        return paths

    def path_between(self, klass: Class, ancestor: Class) -> Optional[list[BaseClassSpecifier]]:
        """The first depth-first path from klass to ancestor, None when unrelated"""
        paths = self.ancestor_paths(klass, ancestor)
        return paths[0] if paths else None
