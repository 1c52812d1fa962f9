"""Package entry point for ``python -m video_subtitler``.

Delegates to the CLI's main(); see video_subtitler.cli for subcommands.
"""

from video_subtitler.cli import main

if __name__ == "__main__":
    main()
