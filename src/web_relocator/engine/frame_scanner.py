"""
Frame Scanner - Enumerate readable frames, main frame first.
"""

import logging
from typing import List

from web_relocator.exceptions import FrameAccessError
from web_relocator.interfaces.tree import IFrame, ITreeProvider

logger = logging.getLogger(__name__)


class FrameScanner:
    """
    Builds a fresh, ordered frame list from a tree provider.
    
    Frames that cannot be read are left out of the result; the scan
    itself never raises.
    
    Usage:
        scanner = FrameScanner(provider)
        frames = await scanner.scan()
    """
    
    def __init__(self, provider: ITreeProvider):
        self._provider = provider
    
    async def scan(self) -> List[IFrame]:
        """
        Enumerate frames in provider order.
        
        Returns:
            Readable frames, main frame first; empty if enumeration fails
        """
        try:
            handles = list(await self._provider.frame_handles())
        except Exception as e:
            logger.warning(f"Frame enumeration failed: {e}")
            return []
        
        frames: List[IFrame] = []
        for index, handle in enumerate(handles):
            try:
                frame = await self._provider.open_frame(handle, index)
            except FrameAccessError as e:
                logger.debug(f"Skipping inaccessible frame {index}: {e.message}")
                continue
            except Exception as e:
                logger.debug(f"Skipping frame {index} after error: {e}")
                continue
            if frame is not None:
                frames.append(frame)
        
        logger.debug(f"Scanned {len(frames)}/{len(handles)} frames")
        return frames
