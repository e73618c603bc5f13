"""
Pipeline Adapters

In-process hand-off primitives connecting the pipeline workers.
"""

from dataflow.adapters.channel import Channel, ChannelClosed, ErrorSlot

__all__ = ["Channel", "ChannelClosed", "ErrorSlot"]
