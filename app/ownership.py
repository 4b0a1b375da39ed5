"""
One ownership rule for every owned resource: only the owner may mutate it.

Update and delete are single conditional statements matching both the id
and the owner, so a concurrent request cannot slip in between an ownership
check and the write. When nothing matched, a follow-up lookup decides
between "not found" and "forbidden".
"""
from app import db
from app.errors import ForbiddenError, NotFoundError


def _owner_column(model):
    return getattr(model, model.__owner_column__)


def owned_by(model, resource_id, user):
    """Filter selecting the resource only if ``user`` owns it"""
    return model.query.filter(model.id == resource_id, _owner_column(model) == user.id)


def explain_miss(model, resource_id, user, label):
    """Raise the error for a conditional statement that matched no row"""
    resource = db.session.get(model, resource_id)
    if resource is None:
        raise NotFoundError(f'{label} not found')
    if getattr(resource, model.__owner_column__) != user.id:
        raise ForbiddenError('User not authorized')
    return resource


def update_owned(model, resource_id, user, values, label, extra_criteria=()):
    """
    Apply ``values`` to the resource if ``user`` owns it.

    ``extra_criteria`` are additional SQL conditions the stored row must
    satisfy; when the row exists and is owned but fails them, the stored
    resource is returned for the caller to report on.
    Returns (matched, resource).
    """
    query = owned_by(model, resource_id, user)
    for criterion in extra_criteria:
        query = query.filter(criterion)

    if values:
        matched = query.update(values, synchronize_session=False)
    else:
        matched = query.count()

    if not matched:
        resource = explain_miss(model, resource_id, user, label)
        return False, resource

    resource = db.session.get(model, resource_id, populate_existing=True)
    return True, resource


def delete_owned(model, resource_id, user, label):
    """Delete the resource if ``user`` owns it"""
    deleted = owned_by(model, resource_id, user).delete(synchronize_session=False)
    if not deleted:
        explain_miss(model, resource_id, user, label)
    return deleted
