"""
Command-line interface for the media localization pipeline.
"""

import argparse
import asyncio
import json
import logging
import os
import uuid

from .config import load_settings
from .errors import LocalizationError
from .io_ffmpeg import MediaTranscoder, VOICE_EFFECTS
from .pipeline import LocalizationOrchestrator
from .registry import build_gateway, build_script_generator
from .scripts import SCRIPT_LENGTHS, SCRIPT_TONES
from .srt_utils import write_srt
from .store import JsonProjectStore
from .voices import TONES, supported_languages

logger = logging.getLogger("localizer")


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    ap = argparse.ArgumentParser(description="Media localization pipeline (voiceover, captions, dubbing)")
    ap.add_argument("--verbose", action="store_true", help="Enable debug logging")
    ap.add_argument("--env-file", default=None, help="Path to a .env file")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("init", help="Create a project from a source video")
    p.add_argument("video")
    p.add_argument("--project-id", default=None)

    p = sub.add_parser("voiceover", help="Synthesize a script and put it on the project's video")
    p.add_argument("project_id")
    p.add_argument("--script", default=None, help="Script text")
    p.add_argument("--script-file", default=None, help="Read the script from a file")
    p.add_argument("--tone", choices=list(TONES), default="male")
    p.add_argument("--language", default="en")

    p = sub.add_parser("captions", help="Generate captions from speech or from a script")
    p.add_argument("project_id")
    p.add_argument("--language", default="en")
    p.add_argument("--script-file", default=None, help="Time a script instead of transcribing")
    p.add_argument("--translate-to", default=None)
    p.add_argument("--font-size", type=int, default=None)
    p.add_argument("--font-color", default=None)
    p.add_argument("--position", choices=["top", "center", "bottom"], default=None)

    p = sub.add_parser("translate-captions", help="Translate the project's active captions")
    p.add_argument("project_id")
    p.add_argument("target_language")

    p = sub.add_parser("dub", help="Dub the project's video into another language")
    p.add_argument("project_id")
    p.add_argument("target_language")
    p.add_argument("--tone", choices=list(TONES), default="male")
    p.add_argument("--source-language", default=None)

    p = sub.add_parser("voice-effect", help="Apply pitch/speed/effect transforms to an audio file")
    p.add_argument("audio")
    p.add_argument("--effect", choices=sorted(VOICE_EFFECTS), default=None)
    p.add_argument("--pitch", type=float, default=1.0)
    p.add_argument("--speed", type=float, default=1.0)

    p = sub.add_parser("export-srt", help="Write the project's captions to an SRT file")
    p.add_argument("project_id")
    p.add_argument("output")
    p.add_argument("--max-line-chars", type=int, default=None)

    p = sub.add_parser("generate-script", help="Draft a voiceover script with GPT")
    p.add_argument("prompt")
    p.add_argument("--tone", choices=list(SCRIPT_TONES), default="professional")
    p.add_argument("--length", choices=list(SCRIPT_LENGTHS), default="medium")
    p.add_argument("--language", default="en")
    p.add_argument("--project-id", default=None, help="Size the script to this project's video")

    sub.add_parser("languages", help="List supported language codes")

    p = sub.add_parser("versions", help="List or delete project versions")
    p.add_argument("project_id")
    p.add_argument("--delete", type=int, default=None, metavar="INDEX")

    return ap.parse_args(argv)


def _read_script(args: argparse.Namespace) -> str:
    if args.script_file:
        with open(args.script_file, encoding="utf-8") as f:
            return f.read()
    return args.script or ""


def _print(data) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


async def run(args: argparse.Namespace) -> None:
    settings = load_settings(args.env_file)
    transcoder = MediaTranscoder(settings.ffmpeg_path, settings.ffprobe_path)
    store = JsonProjectStore(settings.projects_dir)

    if args.command == "init":
        asset = await transcoder.probe(os.path.abspath(args.video), "video")
        project = await store.create(args.project_id or uuid.uuid4().hex[:12], asset)
        logger.info(f"Created project {project.project_id} ({asset.duration_seconds:.2f}s)")
        _print(project.to_dict())
        return

    if args.command == "languages":
        _print(supported_languages())
        return

    if args.command == "generate-script":
        duration = None
        if args.project_id:
            video = (await store.load(args.project_id)).original_video
            duration = video.duration_seconds if video else None
        generator = build_script_generator(settings)
        result = await generator.generate_script(args.prompt, args.tone, args.length, args.language, duration)
        _print(result.to_dict())
        return

    if args.command == "export-srt":
        project = await store.load(args.project_id)
        if project.captions is None:
            raise LocalizationError("Project has no captions")
        write_srt(project.captions, args.output, args.max_line_chars)
        return

    gateway = build_gateway(settings, transcoder)
    orch = LocalizationOrchestrator(gateway, transcoder, store, settings.output_dir)

    if args.command == "voiceover":
        result = await orch.voiceover(args.project_id, _read_script(args), args.tone, args.language)
        _print(
            {
                "record": result.record.to_dict() if result.record else None,
                "audio": result.audio_asset.to_dict() if result.audio_asset else None,
                "degradations": result.degradations,
            }
        )
    elif args.command == "captions":
        script = None
        if args.script_file:
            with open(args.script_file, encoding="utf-8") as f:
                script = f.read()
        style = {"fontSize": args.font_size, "color": args.font_color, "position": args.position}
        caption_set = await orch.captions(
            args.project_id, args.language, script=script, translate_to=args.translate_to, style=style
        )
        _print(caption_set.to_dict())
    elif args.command == "translate-captions":
        caption_set = await orch.translate_captions(args.project_id, args.target_language)
        _print(caption_set.to_dict())
    elif args.command == "dub":
        result = await orch.dub(args.project_id, args.target_language, args.tone, args.source_language)
        _print({"record": result.record.to_dict(), "degradations": result.degradations})
    elif args.command == "voice-effect":
        asset = await orch.apply_voice_effect(args.audio, args.effect, args.pitch, args.speed)
        _print(asset.to_dict())
    elif args.command == "versions":
        if args.delete is not None:
            project = await orch.delete_version(args.project_id, args.delete)
        else:
            project = await store.load(args.project_id)
        _print([v.to_dict() for v in project.versions])


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)
    try:
        asyncio.run(run(args))
    except (LocalizationError, ValueError, IndexError, RuntimeError) as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
