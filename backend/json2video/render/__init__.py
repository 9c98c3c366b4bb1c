from json2video.render.encoder import FfmpegEncoder
from json2video.render.filters import FilterChain, compose_filter_chain
from json2video.render.pipeline import RenderPipeline

__all__ = [
    "FfmpegEncoder",
    "FilterChain",
    "RenderPipeline",
    "compose_filter_chain",
]
