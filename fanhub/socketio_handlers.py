"""
SocketIO Event Handlers for Live Match Updates

Clients join a room per match (``match:<id>``) or the ``all-matches`` room
used by the match list. Admin match updates are relayed through
dispatch_match_events().
"""

import logging

from flask import request
from flask_socketio import join_room, leave_room

from fanhub import socketio

logger = logging.getLogger(__name__)

NAMESPACE = "/live"
ALL_MATCHES_ROOM = "all-matches"
UPDATE_EVENT = "match:update"


def match_room(match_id):
    return f"match:{match_id}"


@socketio.on("connect", namespace=NAMESPACE)
def on_connect():
    logger.info(f"Client connected to {NAMESPACE}: {request.sid}")


@socketio.on("disconnect", namespace=NAMESPACE)
def on_disconnect(*args):
    logger.info(f"Client disconnected from {NAMESPACE}: {request.sid}")


@socketio.on("subscribe:match", namespace=NAMESPACE)
def on_subscribe_match(match_id):
    """Subscribe to updates for a specific match"""
    if match_id is None:
        return
    join_room(match_room(match_id))
    logger.debug(f"Client {request.sid} subscribed to {match_room(match_id)}")


@socketio.on("unsubscribe:match", namespace=NAMESPACE)
def on_unsubscribe_match(match_id):
    """Unsubscribe from updates for a specific match"""
    if match_id is None:
        return
    leave_room(match_room(match_id))
    logger.debug(f"Client {request.sid} unsubscribed from {match_room(match_id)}")


@socketio.on("subscribe:all-matches", namespace=NAMESPACE)
def on_subscribe_all_matches(*args):
    join_room(ALL_MATCHES_ROOM)
    logger.debug(f"Client {request.sid} subscribed to {ALL_MATCHES_ROOM}")


def dispatch_match_events(events):
    """
    Broadcast match update events to their match room and the match list

    Args:
        events: Iterable of MatchUpdateEvent

    Returns:
        Number of events delivered
    """
    delivered = 0
    for event in events:
        payload = event.to_dict()
        try:
            socketio.emit(
                UPDATE_EVENT, payload, to=match_room(event.match_id), namespace=NAMESPACE
            )
            socketio.emit(UPDATE_EVENT, payload, to=ALL_MATCHES_ROOM, namespace=NAMESPACE)
            delivered += 1
        except Exception as e:
            logger.error(f"Error broadcasting {event.type} update for match {event.match_id}: {e}")

    if delivered:
        logger.debug(f"Broadcasted {delivered} live update(s)")
    return delivered
