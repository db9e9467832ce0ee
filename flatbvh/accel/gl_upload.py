# flatbvh/accel/gl_upload.py
"""
Загрузка TexelLayout в OpenGL‑текстуру GL_RGBA32F (nearest, clamp).

Нужен текущий GL‑контекст (его создаёт внешнее приложение).  Модуль не
импортируется из flatbvh.accel автоматически – PyOpenGL подгружается
только здесь.
"""

import numpy as np
from OpenGL import GL

from flatbvh.accel.texture import TexelLayout
from flatbvh.utils.logger import logger, gl_check_error


def upload_texture(layout: TexelLayout, texture_id=None):
    """
    Создать (или перезаписать texture_id) 2D‑текстуру из раскладки.
    Пустая раскладка загружается как один нулевой тексель –
    потребитель ориентируется на record_count.
    """
    if layout.record_count == 0:
        data = np.zeros((1, 1, 4), dtype=np.float32)
    else:
        data = np.ascontiguousarray(layout.image, dtype=np.float32)
    height, width = data.shape[0], data.shape[1]

    tex = GL.glGenTextures(1) if texture_id is None else texture_id
    GL.glBindTexture(GL.GL_TEXTURE_2D, tex)
    GL.glPixelStorei(GL.GL_UNPACK_ALIGNMENT, 1)
    GL.glTexImage2D(GL.GL_TEXTURE_2D, 0, GL.GL_RGBA32F,
                    width, height, 0, GL.GL_RGBA, GL.GL_FLOAT, data)
    GL.glTexParameteri(GL.GL_TEXTURE_2D,
                       GL.GL_TEXTURE_MIN_FILTER, GL.GL_NEAREST)
    GL.glTexParameteri(GL.GL_TEXTURE_2D,
                       GL.GL_TEXTURE_MAG_FILTER, GL.GL_NEAREST)
    GL.glTexParameteri(GL.GL_TEXTURE_2D,
                       GL.GL_TEXTURE_WRAP_S, GL.GL_CLAMP_TO_EDGE)
    GL.glTexParameteri(GL.GL_TEXTURE_2D,
                       GL.GL_TEXTURE_WRAP_T, GL.GL_CLAMP_TO_EDGE)
    GL.glBindTexture(GL.GL_TEXTURE_2D, 0)

    if not gl_check_error("upload_texture", gl=GL):
        raise RuntimeError("[Texture] glTexImage2D failed; see log for the GL error")
    logger.info(f"[Texture] Uploaded {layout.record_count} records as "
                f"{width}x{height} RGBA32F texture {tex}.")
    return tex
