from salesboard.live.channel import LiveChannel, LiveEvent, Subscriber, new_sale_event

__all__ = ["LiveChannel", "LiveEvent", "Subscriber", "new_sale_event"]
