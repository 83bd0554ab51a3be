"""
Group discovery videos by channel.
"""
from .models import ChannelAggregate, VideoRecord

MAX_SAMPLE_TITLES = 3


def aggregate_by_channel(videos: list[VideoRecord]) -> dict[str, ChannelAggregate]:
    """Collect view counts, upload count and sample titles per channel.

    Videos without a channel id are skipped. Sample titles keep the first
    three seen, in input order. The returned dict preserves first-seen
    channel order.
    """
    channels: dict[str, ChannelAggregate] = {}

    for video in videos:
        if not video.channel_id:
            continue

        row = channels.get(video.channel_id)
        if row is None:
            row = ChannelAggregate(
                channel_id=video.channel_id,
                channel_title=video.channel_title or "Unknown",
            )
            channels[video.channel_id] = row

        row.views.append(max(0, int(video.view_count or 0)))
        row.count += 1
        if len(row.sample_titles) < MAX_SAMPLE_TITLES:
            row.sample_titles.append(video.title or "")

    return channels
