"""Gradio layout for the icon maker page."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional, Sequence, Tuple

import gradio as gr

from config.settings import AppConfig
from modules.generation.imagen_client import ImagenClient
from modules.generation.style_presets import StylePresetRegistry
from modules.ui.callbacks import GENERATE_LABEL, build_callbacks


def _load_style_registry(config: AppConfig) -> StylePresetRegistry:
    registry = StylePresetRegistry.with_defaults()
    registry.load_from_file(Path(config.assets_dir) / "styles.json")
    return registry


def _style_choices(registry: StylePresetRegistry) -> Sequence[Tuple[str, str]]:
    return [(preset.display_name, preset.id) for preset in registry.list_presets()]


def build_app(config: AppConfig, client: Optional[ImagenClient] = None) -> Any:
    """Compose and return the Gradio application."""
    style_registry = _load_style_registry(config)
    callbacks_map = build_callbacks(config, client=client, style_registry=style_registry)

    with gr.Blocks(title="AI アイコンメーカー") as demo:
        store = gr.State(callbacks_map["new_session"])

        gr.Markdown(
            "# AI アイコンメーカー\n"
            "キーワードを入れるだけで、AIがあなただけのSNSアイコンを描き上げます。"
        )

        with gr.Row():
            # 入力
            with gr.Column():
                prompt = gr.Textbox(
                    label="どんなアイコンにしますか？",
                    placeholder="例: サイバーパンクな猫, 宇宙服を着た柴犬",
                    lines=1,
                )
                style_select = gr.Radio(
                    label="スタイルを選択",
                    choices=list(_style_choices(style_registry)),
                    value=style_registry.default().id,
                )
                generate_btn = gr.Button(GENERATE_LABEL, variant="primary", interactive=False)
                error_box = gr.Markdown("")

            # プレビュー・履歴
            with gr.Column():
                preview = gr.Image(label="プレビュー", type="pil", interactive=False)
                download_btn = gr.Button("保存する")
                download_file = gr.File(label="ダウンロード", visible=False, interactive=False)

                with gr.Column(visible=False) as history_group:
                    history_header = gr.Markdown("#### 生成履歴 (0)")
                    history_gallery = gr.Gallery(
                        label="生成履歴",
                        show_label=False,
                        columns=6,
                        height="auto",
                        allow_preview=False,
                    )
                    clear_btn = gr.Button("クリア", size="sm", variant="stop")
                    with gr.Row(visible=False) as confirm_row:
                        gr.Markdown("履歴をすべて削除しますか？")
                        confirm_yes = gr.Button("はい", size="sm", variant="stop")
                        confirm_no = gr.Button("いいえ", size="sm")

        gr.Markdown("Powered by Google Imagen")

        rendered = [preview, error_box, history_header, history_gallery, history_group]

        prompt.change(
            fn=callbacks_map["on_prompt_change"],
            inputs=[store, prompt],
            outputs=[generate_btn],
            queue=False,
        )
        style_select.change(
            fn=callbacks_map["on_style_change"],
            inputs=[store, style_select],
            outputs=None,
            queue=False,
        )

        for trigger in (generate_btn.click, prompt.submit):
            trigger(
                fn=callbacks_map["on_generation_start"],
                inputs=[store, prompt, style_select],
                outputs=[generate_btn],
                queue=False,
                trigger_mode="once",
            ).then(
                fn=callbacks_map["on_generate"],
                inputs=[store],
                outputs=rendered + [generate_btn],
            )

        history_gallery.select(
            fn=callbacks_map["on_select_history"],
            inputs=[store],
            outputs=rendered,
        )

        download_btn.click(
            fn=callbacks_map["on_download"],
            inputs=[store],
            outputs=[download_file, error_box],
        )

        clear_btn.click(
            fn=callbacks_map["on_request_clear"],
            inputs=[store],
            outputs=[confirm_row],
            queue=False,
        )
        confirm_yes.click(
            fn=lambda current: callbacks_map["on_clear_history"](current, True),
            inputs=[store],
            outputs=rendered + [confirm_row],
        )
        confirm_no.click(
            fn=lambda current: callbacks_map["on_clear_history"](current, False),
            inputs=[store],
            outputs=rendered + [confirm_row],
        )

    return demo
