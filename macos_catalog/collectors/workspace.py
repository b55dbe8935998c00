"""Batch icon extraction through NSWorkspace (osascript / JXA)."""

import asyncio
import json
import logging
import tempfile
from pathlib import Path

from macos_catalog.collectors.sips import resize_png
from macos_catalog.util.shell import run

logger = logging.getLogger(__name__)

OSASCRIPT = "/usr/bin/osascript"

# argv: JSON file with the list of bundle paths, output directory, icon size.
# Writes <index>.png per icon and map.json ({bundle path: png path}).
_JXA_SCRIPT = """
ObjC.import("AppKit");
ObjC.import("Foundation");

function run(argv) {
  var size = parseInt(argv[2], 10);
  var data = $.NSData.dataWithContentsOfFile(argv[0]);
  var str = ObjC.unwrap($.NSString.alloc.initWithDataEncoding(data, $.NSUTF8StringEncoding));
  var paths = JSON.parse(str);
  var ws = $.NSWorkspace.sharedWorkspace;
  var results = {};

  for (var i = 0; i < paths.length; i++) {
    try {
      var icon = ws.iconForFile(paths[i]);
      icon.setSize({width: size, height: size});
      var rep = $.NSBitmapImageRep.imageRepWithData(icon.TIFFRepresentation);
      var png = rep.representationUsingTypeProperties(4, $({}));
      var outFile = argv[1] + "/" + i + ".png";
      png.writeToFileAtomically(outFile, true);
      results[paths[i]] = outFile;
    } catch (e) {}
  }

  var out = $.NSString.alloc.initWithUTF8String(JSON.stringify(results));
  out.writeToFileAtomicallyEncodingError(argv[1] + "/map.json", true, 4, null);
  return "";
}
"""


async def lookup_workspace_icons(
    bundle_paths: list[str],
    size: int,
    timeout: float = 120,
    batch_size: int = 6,
    resize_timeout: float = 10
) -> dict[str, bytes]:
    """
    Ask NSWorkspace for the effective icon of every bundle in one osascript run.

    Args:
        bundle_paths: Bundles to look up (duplicates are ignored)
        size: Edge length of the resulting PNGs
        timeout: Ceiling for the single osascript invocation
        batch_size: Number of concurrent sips resize calls
        resize_timeout: Ceiling for each sips resize call

    Returns:
        Mapping of bundle path to PNG bytes for each bundle that produced an icon.

    Raises:
        TimeoutError: If osascript exceeds the timeout
        OSError: If osascript cannot be started or the temp area is unusable
    """
    unique_paths = list(dict.fromkeys(bundle_paths))
    if not unique_paths:
        return {}

    with tempfile.TemporaryDirectory(prefix="macos-catalog-ws-") as tmp:
        tmp_dir = Path(tmp)
        out_dir = tmp_dir / "icons"
        out_dir.mkdir()
        paths_file = tmp_dir / "paths.json"
        paths_file.write_text(json.dumps(unique_paths))
        script_file = tmp_dir / "icons.js"
        script_file.write_text(_JXA_SCRIPT)

        result = await run(
            [OSASCRIPT, "-l", "JavaScript", str(script_file), str(paths_file), str(out_dir), str(size)],
            timeout=timeout
        )
        if not result.success:
            logger.debug("osascript exited %s: %s", result.code, result.err[:200])

        map_file = out_dir / "map.json"
        if not map_file.exists():
            return {}

        try:
            mapping = json.loads(map_file.read_text())
        except ValueError:
            logger.debug("Workspace icon map is not valid JSON")
            return {}

        items = [(p, png) for p, png in mapping.items() if isinstance(png, str)]
        icons: dict[str, bytes] = {}
        for start in range(0, len(items), batch_size):
            batch = items[start:start + batch_size]
            payloads = await asyncio.gather(*(resize_png(png, size, timeout=resize_timeout) for _, png in batch))
            for (bundle_path, _), payload in zip(batch, payloads):
                if payload:
                    icons[bundle_path] = payload

        return icons
