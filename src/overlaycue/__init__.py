"""overlaycue — declarative overlay scenarios for video playback.

A scenario document declares tracks and cues of overlay nodes (groups, text,
images, video) with display windows and plugin chains. Loading resolves
``define.*`` references, applies parent-to-child inheritance and validates
the result; playback mounts cues ahead of time, cleans them up after a
delay, and composes plugin output into per-node channel values each tick.
"""
