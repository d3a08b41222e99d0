"""Wishlist operations scoped to one verified owner."""
from igame.storage.base import WishlistEntry


def list_entries(store, owner_id):
    return store.list_wishlist(owner_id)


def game_ids(entries):
    """Catalog ids of the entries that reference a game, in wishlist order."""
    return [e.game_id for e in entries if e.game_id is not None]


def add_entry(store, owner_id, fields):
    """Add a validated entry; a game already on the list is returned as is."""
    entry = WishlistEntry(
        owner_id=owner_id,
        game_id=fields.get('game_id'),
        title=fields.get('title', ''),
        platform=fields.get('platform', ''),
        genres=sorted(set(fields.get('genres', []))),
        reason=fields.get('reason', ''),
    )
    return store.add_wishlist_entry(entry)


def add_game(store, owner_id, game_id):
    add_entry(store, owner_id, {'game_id': game_id})
    return game_ids(store.list_wishlist(owner_id))


def remove_game(store, owner_id, game_id):
    store.remove_wishlist_entries(owner_id, game_id=game_id)
    return game_ids(store.list_wishlist(owner_id))


def remove_entry(store, owner_id, entry_id):
    store.remove_wishlist_entries(owner_id, entry_id=entry_id)
    return store.list_wishlist(owner_id)
