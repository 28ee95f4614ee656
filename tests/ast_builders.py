"""Builders for clang JSON AST fragments, shaped like -ast-dump=json output"""

import itertools

from smokegen.config import ParserOptions
from smokegen.decltree import DeclTree
from smokegen.model import Model
from smokegen.visitor import DeclarationVisitor

_ids = itertools.count(1)


def node(kind, name=None, *inner, **fields):
    data = {'id': hex(next(_ids)), 'kind': kind}
    if name is not None:
        data['name'] = name
    data.update(fields)
    if inner:
        data['inner'] = list(inner)
    return data


def tu(*decls, file='test.h'):
    if decls:
        decls[0].setdefault('loc', {'file': file, 'line': 1, 'col': 1})
    return node('TranslationUnitDecl', None, *decls)


def rng(begin, end):
    """Byte range [begin, end) in clang's begin/end + tokLen form"""
    return {'begin': {'offset': begin, 'tokLen': 0}, 'end': {'offset': end, 'tokLen': 0}}


def base(type_, access='public', virtual=False):
    return {'type': {'qualType': type_}, 'access': access, 'isVirtual': virtual}


def record(name, *inner, tag='struct', bases=(), definition=True, access=None, kind='CXXRecordDecl'):
    fields = {'tagUsed': tag}
    if definition:
        fields['completeDefinition'] = True
        fields['bases'] = list(bases)
        # clang lists the injected class name first
        inner = (node(kind, name, tagUsed=tag, isImplicit=True),) + inner
    if access:
        fields['access'] = access
    return node(kind, name, *inner, **fields)


def namespace(name, *inner):
    return node('NamespaceDecl', name, *inner)


def param(name, type_, default=None):
    fields = {'type': {'qualType': type_}}
    inner = ()
    if default is not None:
        fields['init'] = 'c'
        inner = (default,)
    return node('ParmVarDecl', name, *inner, **fields)


def method(name, ret='void', params=(), access='public', const=False, kind='CXXMethodDecl',
           attrs=(), **fields):
    spelling = f'{ret} ({", ".join(p["type"]["qualType"] for p in params)})'
    if const:
        spelling += ' const'
    return node(kind, name, *params, *attrs, type={'qualType': spelling}, access=access, **fields)


def ctor(name, params=(), access='public', **fields):
    return method(name, 'void', params, access, kind='CXXConstructorDecl', **fields)


def dtor(name, access='public', **fields):
    return method(f'~{name}', 'void', (), access, kind='CXXDestructorDecl', **fields)


def field(name, type_, access='public'):
    return node('FieldDecl', name, type={'qualType': type_}, access=access)


def static_var(name, type_, access='public'):
    return node('VarDecl', name, type={'qualType': type_}, access=access, storageClass='static')


def enum_constant(name, value=None):
    inner = ()
    if value is not None:
        inner = (node('ConstantExpr', None, node('IntegerLiteral', value=str(value)), value=str(value)),)
    return node('EnumConstantDecl', name, *inner, type={'qualType': 'int'})


def enum(name, *constants, scoped=False, access=None):
    fields = {}
    if scoped:
        fields['scopedEnumTag'] = 'class'
    if access:
        fields['access'] = access
    inner = [c if isinstance(c, dict) else enum_constant(c) for c in constants]
    return node('EnumDecl', name, *inner, **fields)


def typedef(name, type_, kind='TypedefDecl'):
    return node(kind, name, type={'qualType': type_})


def function(name, ret='void', params=()):
    spelling = f'{ret} ({", ".join(p["type"]["qualType"] for p in params)})'
    return node('FunctionDecl', name, *params, type={'qualType': spelling})


def template_param(name):
    return node('TemplateTypeParmDecl', name, tagUsed='typename', depth=0, index=0)


def class_template(name, params, pattern, *specializations):
    return node('ClassTemplateDecl', name, *[template_param(p) for p in params],
                pattern, *specializations)


def static_assert(message):
    return node('StaticAssertDecl', None,
                node('CXXBoolLiteralExpr', value=True),
                node('StringLiteral', value=f'"{message}"'))


def access_spec(access, annotation=None):
    inner = ()
    if annotation:
        inner = (node('AnnotateAttr', None, node('StringLiteral', value=f'"{annotation}"')),)
    return node('AccessSpecDecl', None, *inner, access=access)


def int_literal(value):
    return node('IntegerLiteral', value=str(value), type={'qualType': 'int'})


def decl_ref(target, **fields):
    ref = {'id': target['id'], 'kind': target['kind'], 'name': target.get('name', '')}
    return node('DeclRefExpr', None, referencedDecl=ref, **fields)


def build(*decls, sources=None, options=None, model=None) -> Model:
    """Visit a translation unit made of decls into a (fresh) model"""
    model = model or Model()
    tree = DeclTree.from_dict(tu(*decls), sources)
    DeclarationVisitor(model, options or ParserOptions()).visit(tree)
    return model
