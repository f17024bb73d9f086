import dataclasses

from dataclasses import dataclass
from typing import dataclass_transform

from lightkube.core.schema import DictMixin
from lightkube.core import resource as lkr

from .resources import Resource


_resource_verbs = [
    'delete',
    'deletecollection',
    'get',
    'global_list',
    'global_watch',
    'list',
    'patch',
    'post',
    'put',
    'watch',
]

_subresource_verbs = [
    'get',
    'patch',
    'put',
]


class ModelMixin(DictMixin):
    @classmethod
    def from_dict(cls, d, lazy=True):
        # Custom Resource models can not be lazy.
        if isinstance(d, cls):
            return d
        return super(ModelMixin, cls).from_dict(d, lazy=False)


def _pluralize(singular):
    if singular.endswith('s'):
        return f'{singular}es'
    return f'{singular}s'


def _class_dict(cls):
    # Ensure class __dict__ does not contain a nested __dict__ key.
    # See https://jira.mongodb.org/browse/MOTOR-460
    cls_dict = dict(cls.__dict__)
    cls_dict.pop('__dict__', None)
    cls_dict.pop('__weakref__', None)
    return cls_dict


# @see https://mypy.readthedocs.io/en/stable/additional_features.html
@dataclass_transform()
def resource(group, version, kind=None, scope='Namespaced', plural=None):
    """Turn the decorated class into a lightkube resource of the given group/version."""

    def _wrap(model):
        # Our own Resource.__repr__ is more useful in logs than the dataclass one.
        if not dataclasses.is_dataclass(model):
            model = dataclass(model, kw_only=True, repr=False)

        _kind = kind or model.__name__
        _plural = plural or _pluralize(_kind.lower())
        model_dict = _class_dict(model)

        if scope == 'Cluster':
            bases = (Resource, lkr.GlobalResource, ModelMixin)
        else:
            bases = (Resource, lkr.NamespacedResourceG, ModelMixin)
        _Resource = type(_kind, bases, model_dict)
        _Resource._api_info = lkr.ApiInfo(
            resource=lkr.ResourceDef(group, version, _kind),
            plural=_plural,
            verbs=_resource_verbs,
        )
        # Ensure our resource knows what it is.
        _Resource.apiVersion = _Resource._api_info.resource.api_version
        _Resource.kind = _kind

        # Objects with a status subresource need a second resource to
        # write their status.
        status_field = model.__dataclass_fields__.get('status')
        if status_field is not None and getattr(status_field.type, '__subresource__', False):
            if scope == 'Cluster':
                status_bases = (lkr.GlobalSubResource, ModelMixin)
            else:
                status_bases = (lkr.NamespacedSubResource, ModelMixin)
            _StatusResource = type(f'{_kind}Status', status_bases, _class_dict(model))
            _StatusResource._api_info = lkr.ApiInfo(
                resource=_Resource._api_info.resource,
                parent=_Resource._api_info.resource,
                plural=_plural,
                verbs=_subresource_verbs,
                action='status',
            )
            _Resource.Status = _StatusResource

        return _Resource

    return _wrap


@dataclass_transform()
def subresource(resource_class=None, /):
    """Decorator for the model of a status subresource."""

    def _wrap(cls):
        model = type(cls.__name__, (ModelMixin,), _class_dict(cls))
        model.__subresource__ = True
        if not dataclasses.is_dataclass(model):
            model = dataclass(model)
        return model

    if resource_class is None:
        return _wrap
    else:
        return _wrap(resource_class)


@dataclass_transform()
def model(resource_class=None, /):
    """Decorator for nested models of a resource."""

    def _wrap(cls):
        model = type(cls.__name__, (ModelMixin,), _class_dict(cls))
        if not dataclasses.is_dataclass(model):
            model = dataclass(model)
        return model

    if resource_class is None:
        return _wrap
    else:
        return _wrap(resource_class)
