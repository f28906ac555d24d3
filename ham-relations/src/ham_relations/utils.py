def mixin_into(target_cls, source_cls):
    """Copy the methods of ``source_cls`` and its bases onto ``target_cls``."""
    for klass in reversed(source_cls.__mro__):
        if klass is object:
            continue
        for name, value in klass.__dict__.items():
            if not name.startswith("__"):
                setattr(target_cls, name, value)
    return target_cls


def attach_relations(model_cls):
    """Give an existing mapped class the entity contract and relation methods."""
    from .model import RelationalModel
    return mixin_into(model_cls, RelationalModel)
