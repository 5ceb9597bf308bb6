"""
Local-to-remote reconciliation.

Clients that worked signed-out keep favorites, folders and custom prompts
locally. On sign-in the local set is merged into the remote one once:
anything the remote side lacks (by id) is uploaded, the remote copy wins on
conflicts. Uploads are upserts by id, so rerunning a merge is harmless.
"""

from typing import Callable, Hashable, List, Sequence, Tuple, TypeVar

T = TypeVar("T")


def reconcile(
    local: Sequence[T],
    remote: Sequence[T],
    key: Callable[[T], Hashable] = lambda item: item.id,
) -> Tuple[List[T], List[T]]:
    """
    Merge local items into remote ones.

    Returns:
        (to_upload, final_state): local items missing remotely, in local
        order and deduplicated; and remote followed by those uploads.
    """
    remote_keys = {key(item) for item in remote}
    to_upload: List[T] = []
    seen = set()
    for item in local:
        k = key(item)
        if k in remote_keys or k in seen:
            continue
        seen.add(k)
        to_upload.append(item)
    return to_upload, list(remote) + to_upload
