from django.dispatch import Signal

# Sent after a batched QuerySet.update() commits; post_save does not fire for those.
# Arguments: sender (model class), pks (list of primary keys), fields (list of field names)
rows_updated = Signal()
