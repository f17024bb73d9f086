from dataclasses import dataclass

from lightkube.models import meta_v1


@dataclass
class ObjectMeta(meta_v1.ObjectMeta):
    def __post_init__(self, **kwargs):
        # Set defaults for commonly used nested data structures.
        if self.annotations is None:
            self.annotations = {}
        if self.finalizers is None:
            self.finalizers = []
        if self.labels is None:
            self.labels = {}
        if self.managedFields is None:
            self.managedFields = []
        if self.ownerReferences is None:
            self.ownerReferences = []


class Resource:
    apiVersion: str = None
    kind: str = None
    metadata: ObjectMeta = None

    def __repr__(self):
        name = self.metadata.name
        namespace = self.metadata.namespace
        resource_version = getattr(self.metadata, 'resourceVersion', None)
        out = [f'{self.apiVersion}/{self.kind}']
        if namespace is not None:
            out.append(f'{namespace}/{name}')
        elif name is not None:
            out.append(f'{name}')
        if resource_version is not None:
            out.append(resource_version)
        ident = ' '.join(out)
        return f'<Object {ident}>'

    def __str__(self):
        return f'{self.apiVersion}/{self.kind}'


def api_group(api_version):
    """Return the group of the given apiVersion, '' for the core group."""
    group, sep, _version = api_version.rpartition('/')
    return group if sep else ''


def is_same_version(o1, o2):
    o1_resource_version = o1.metadata.resourceVersion
    o2_resource_version = o2.metadata.resourceVersion
    return (
        o1_resource_version is not None and o1_resource_version == o2_resource_version
    )


def is_being_deleted(obj):
    return obj.metadata.deletionTimestamp is not None


def has_finalizer(obj, finalizer):
    return finalizer in (obj.metadata.finalizers or [])


def add_finalizer(obj, finalizer):
    """Add the finalizer if missing. Returns True if the object was changed."""
    if obj.metadata.finalizers is None:
        obj.metadata.finalizers = []
    if finalizer in obj.metadata.finalizers:
        return False
    obj.metadata.finalizers.append(finalizer)
    return True


def remove_finalizer(obj, finalizer):
    """Remove the finalizer if present. Returns True if the object was changed."""
    finalizers = obj.metadata.finalizers or []
    if finalizer not in finalizers:
        return False
    obj.metadata.finalizers = [f for f in finalizers if f != finalizer]
    return True


def get_owner_reference(obj, group, kind):
    """Return the first owner reference of the given api group and kind."""
    for ref in obj.metadata.ownerReferences or []:
        if ref.kind == kind and api_group(ref.apiVersion) == group:
            return ref
    return None


def set_owner_reference(owner, subject, block_owner_deletion=False, controller=False):
    if subject.metadata.ownerReferences is None:
        subject.metadata.ownerReferences = []
    for existing_ref in subject.metadata.ownerReferences:
        if existing_ref.uid == owner.metadata.uid and existing_ref.kind == owner.kind:
            return existing_ref
        if controller and existing_ref.controller:
            raise ValueError(f'Already owned by a controller: {existing_ref!r}')
    ref = meta_v1.OwnerReference(
        apiVersion=owner.apiVersion,
        kind=owner.kind,
        name=owner.metadata.name,
        uid=owner.metadata.uid,
        blockOwnerDeletion=block_owner_deletion,
        controller=controller,
    )
    subject.metadata.ownerReferences.append(ref)
    return ref


def set_controller_reference(owner, subject):
    return set_owner_reference(
        owner,
        subject,
        block_owner_deletion=True,
        controller=True,
    )
