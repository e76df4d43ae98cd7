#!/usr/bin/env python
# -*- coding: utf-8 -*-
#
#   Autor(s):
#       David Hannequin <david.hannequin@gmail.com>
#   Date : 2026-10-18

import logging

from probe.packet import LI_ALARM

logger = logging.getLogger(__name__)


def _rank(peer):
    return peer.stratum, peer.root_dispersion, peer.root_delay


def best_offset_server(peers):
    """Return the index of the most trustworthy peer, or None.

    Peers reporting stratum 0 or an unsynchronized leap indicator are
    skipped. The rest are ranked by stratum, then root dispersion, then
    root delay. A later peer only wins when it ranks strictly better, so
    a full tie keeps the earlier peer.
    """
    best = None
    for index, peer in enumerate(peers):
        # stratum 0 is for reference clocks, no NTP server should report it
        if peer.stratum == 0:
            logger.info("discarding peer %d: stratum=%d", index, peer.stratum)
            continue
        if peer.leap == LI_ALARM:
            logger.info("discarding peer %d: flags=%d", index, peer.leap)
            continue

        if best is None:
            best = index
            logger.debug("using peer %d as our first candidate", index)
            continue

        logger.debug("comparing peer %d with peer %d", index, best)
        if _rank(peer) < _rank(peers[best]):
            best = index
            logger.debug("peer %d is now our best candidate", index)

    if best is None:
        logger.debug("no peers meeting synchronization criteria")
    else:
        logger.debug("best server selected: peer %d", best)
    return best


def average_offset(peer):
    if not peer.responses:
        raise ValueError(f"no samples collected from {peer.address}")
    return sum(peer.responses) / len(peer.responses)
