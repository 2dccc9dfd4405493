# milkflow/signals.py
from blinker import Namespace

_signals = Namespace()

# Sent after a collection record is committed.
# Receivers get ``sender`` (the app) and ``collection`` (MilkCollection).
collection_created = _signals.signal("collection-created")

# Sent after a collection record is deleted; ``supplier_id`` identifies the owner.
collection_deleted = _signals.signal("collection-deleted")
