"""
JSON model dump

Serializes the frozen entity model to model.json, for inspecting what the
visitor registered or feeding other tools.
"""

import json
import os
from typing import Optional

from .model import Model, Class, Enum, Function, Method, MemberFlag, Parameter, Typedef
from .types import Type


def _type(type_: Optional[Type]) -> Optional[str]:
    return type_.to_string() if type_ is not None else None


def _flags(flags: MemberFlag) -> list[str]:
    return [flag.name.lower() for flag in MemberFlag if flag and flag in flags]


def _params(parameters: list[Parameter]) -> list[dict]:
    params = []
    for p in parameters:
        param = {'name': p.name, 'type': _type(p.type)}
        if p.default_value is not None:
            param['default'] = p.default_value
        params.append(param)
    return params


def _method(method: Method) -> dict:
    return {
        'name': method.name,
        'return': _type(method.return_type),
        'access': method.access.value,
        'flags': _flags(method.flags),
        'params': _params(method.parameters),
    }


def _class(klass: Class) -> dict:
    outp = {
        'name': klass.name,
        'kind': klass.kind.value,
        'namespace': klass.nspace,
        'parent': klass.parent.qualified_name if klass.parent else None,
        'access': klass.access.value,
        'forward': klass.is_forward_decl,
        'template': klass.is_template,
        'file': klass.file_name,
    }
    if klass.is_namespace:
        return outp
    outp['bases'] = [
        {'class': b.base_class.qualified_name, 'access': b.access.value, 'virtual': b.is_virtual}
        for b in klass.base_classes
    ]
    outp['methods'] = [_method(m) for m in klass.methods]
    outp['fields'] = [
        {'name': f.name, 'type': _type(f.type), 'access': f.access.value, 'static': f.is_static}
        for f in klass.fields
    ]
    if klass.properties:
        outp['properties'] = [
            {k: v for k, v in vars(p).items() if v is not None} for p in klass.properties
        ]
    return outp


def _enum(enum: Enum) -> dict:
    return {
        'name': enum.name,
        'parent': enum.parent.qualified_name if enum.parent else None,
        'scoped': enum.is_scoped,
        'members': [m.name for m in enum.members],
    }


def _function(function: Function) -> dict:
    return {
        'name': function.qualified_name,
        'return': _type(function.return_type),
        'params': _params(function.parameters),
    }


def _typedef(typedef: Typedef, model: Model) -> dict:
    return {
        'type': _type(typedef.type),
        'resolved': _type(typedef.resolved_type(model.types)),
    }


def model_to_dict(model: Model, classes: Optional[list[str]] = None) -> dict:
    """Plain-data view of model, optionally restricted to some classes"""
    wanted = set(classes) if classes else None
    return {
        'classes': {
            name: _class(klass) for name, klass in sorted(model.classes.items())
            if wanted is None or name in wanted
        },
        'enums': {name: _enum(e) for name, e in sorted(model.enums.items())},
        'functions': [_function(f) for _, f in sorted(model.functions.items())],
        'typedefs': {name: _typedef(t, model) for name, t in sorted(model.typedefs.items())},
    }


class JsonGenerator:
    """Writes model.json"""

    def __init__(self, module_name: str = 'qt', parts: int = 20):
        self.module_name = module_name

    def generate(self, model: Model, output_dir: str, headers: list[str],
                 classes: Optional[list[str]] = None) -> list[str]:
        outp = model_to_dict(model, classes)
        outp['module'] = self.module_name
        outp['headers'] = [os.path.basename(h) for h in headers]
        path = os.path.join(output_dir, 'model.json')
        with open(path, 'w', newline='\n') as f:
            json.dump(outp, f, indent=2)
        return [path]
