from __future__ import annotations
"""Tkinter-based UI for the storage explorer."""
import tkinter as tk
from pathlib import Path
from tkinter import filedialog, messagebox, ttk

from .controller import ExplorerController
from .errors import GatewayError
from .models import BucketInfo, ConnectionResult
from .navigator import NavigatorState, breadcrumbs, file_display_name, folder_display_name
from .presenter import ExplorerPresenter
from .profiles import ConnectionProfile
from .ui_utils import filename_from_key, format_last_modified, format_size

FOLDER_TAG = "folder"
FILE_TAG = "file"


class ExplorerApp:
    """Tkinter view that delegates business logic to :class:`ExplorerPresenter`."""

    def __init__(self, root: tk.Tk, controller: ExplorerController | None = None):
        self.root = root
        self.root.title("Storage Explorer")
        self.root.geometry("1000x700")
        self.root.minsize(720, 480)

        self.presenter = ExplorerPresenter(
            controller=controller,
            dispatch=lambda func: self.root.after(0, func),
        )
        self.controller = self.presenter.controller
        self._operation_in_progress = False
        self._profile_ids: list[str] = []
        self._bucket_names: list[str] = []
        self._row_targets: dict[str, tuple[str, str]] = {}

        self.status_var = tk.StringVar(value="Ready")
        self.bucket_name_var = tk.StringVar()

        self._create_widgets()
        self._refresh_profiles()
        self._apply_selected_profile(restore=True)

    def _create_widgets(self) -> None:
        main_frame = ttk.Frame(self.root, padding="10")
        main_frame.grid(row=0, column=0, sticky=(tk.W, tk.E, tk.N, tk.S))
        self.root.columnconfigure(0, weight=1)
        self.root.rowconfigure(0, weight=1)
        main_frame.columnconfigure(1, weight=1)
        main_frame.rowconfigure(0, weight=1)

        sidebar = ttk.Frame(main_frame)
        sidebar.grid(row=0, column=0, sticky=(tk.N, tk.S), padx=(0, 10))
        sidebar.rowconfigure(1, weight=1)
        ttk.Label(sidebar, text="Profiles").grid(row=0, column=0, columnspan=2, sticky=tk.W)
        self.profile_list = tk.Listbox(sidebar, exportselection=False, width=28)
        self.profile_list.grid(row=1, column=0, columnspan=2, sticky=(tk.N, tk.S, tk.W, tk.E), pady=(2, 5))
        self.profile_list.bind("<<ListboxSelect>>", lambda _: self._on_profile_selected())
        ttk.Button(sidebar, text="New", command=self.create_profile).grid(row=2, column=0, sticky=(tk.W, tk.E))
        ttk.Button(sidebar, text="Edit", command=self.edit_profile).grid(row=2, column=1, sticky=(tk.W, tk.E))
        ttk.Button(sidebar, text="Delete", command=self.delete_profile).grid(row=3, column=0, sticky=(tk.W, tk.E))
        ttk.Button(sidebar, text="Test", command=self.test_connection).grid(row=3, column=1, sticky=(tk.W, tk.E))

        content = ttk.Frame(main_frame)
        content.grid(row=0, column=1, sticky=(tk.W, tk.E, tk.N, tk.S))
        content.columnconfigure(0, weight=1)
        content.rowconfigure(3, weight=1)

        bucket_frame = ttk.Frame(content)
        bucket_frame.grid(row=0, column=0, sticky=(tk.W, tk.E))
        bucket_frame.columnconfigure(1, weight=1)
        ttk.Label(bucket_frame, text="Bucket:").grid(row=0, column=0, sticky=tk.W)
        self.bucket_combo = ttk.Combobox(bucket_frame, textvariable=self.bucket_name_var)
        self.bucket_combo.grid(row=0, column=1, sticky=(tk.W, tk.E), padx=5)
        self.bucket_combo.bind("<Return>", lambda _: self.open_bucket())
        self.bucket_combo.bind("<<ComboboxSelected>>", lambda _: self.open_bucket())
        self.load_buckets_button = ttk.Button(bucket_frame, text="Load Buckets", command=self.load_buckets)
        self.load_buckets_button.grid(row=0, column=2, padx=(0, 5))
        self.open_bucket_button = ttk.Button(bucket_frame, text="Open", command=self.open_bucket)
        self.open_bucket_button.grid(row=0, column=3)

        nav_frame = ttk.Frame(content)
        nav_frame.grid(row=1, column=0, sticky=(tk.W, tk.E), pady=(10, 0))
        self.up_button = ttk.Button(nav_frame, text="Up One Level", command=self.up_one_level)
        self.up_button.grid(row=0, column=0, padx=(0, 5))
        self.first_page_button = ttk.Button(nav_frame, text="First Page", command=self.load_first_page)
        self.first_page_button.grid(row=0, column=1, padx=(0, 5))
        self.next_page_button = ttk.Button(nav_frame, text="Next Page", command=self.load_next_page)
        self.next_page_button.grid(row=0, column=2, padx=(0, 5))
        self.download_button = ttk.Button(nav_frame, text="Download", command=self.download_selected)
        self.download_button.grid(row=0, column=3)

        self.breadcrumb_frame = ttk.Frame(content)
        self.breadcrumb_frame.grid(row=2, column=0, sticky=(tk.W, tk.E), pady=(10, 5))

        tree_frame = ttk.Frame(content)
        tree_frame.grid(row=3, column=0, sticky=(tk.W, tk.E, tk.N, tk.S))
        tree_frame.columnconfigure(0, weight=1)
        tree_frame.rowconfigure(0, weight=1)
        self.results_tree = ttk.Treeview(
            tree_frame,
            columns=("size", "modified"),
            selectmode="browse",
        )
        self.results_tree.heading("#0", text="Name")
        self.results_tree.heading("size", text="Size")
        self.results_tree.heading("modified", text="Last Modified")
        self.results_tree.column("size", width=100, anchor=tk.E, stretch=False)
        self.results_tree.column("modified", width=180, stretch=False)
        self.results_tree.grid(row=0, column=0, sticky=(tk.W, tk.E, tk.N, tk.S))
        tree_scroll_y = ttk.Scrollbar(tree_frame, orient="vertical", command=self.results_tree.yview)
        tree_scroll_y.grid(row=0, column=1, sticky=(tk.N, tk.S))
        self.results_tree.configure(yscrollcommand=tree_scroll_y.set)
        self.results_tree.bind("<Double-1>", self._handle_tree_double_click)
        self.results_tree.bind("<<TreeviewSelect>>", lambda _: self._refresh_controls())

        self.progress = ttk.Progressbar(content, mode="indeterminate")
        self.progress.grid(row=4, column=0, sticky=(tk.W, tk.E), pady=5)
        ttk.Label(content, textvariable=self.status_var, anchor=tk.W).grid(row=5, column=0, sticky=(tk.W, tk.E))

    def create_profile(self) -> None:
        dialog = ConnectionDialog(self.root, title="Create Profile", controller=self.controller)
        profile = dialog.show()
        if profile:
            self._save_profile(profile)

    def edit_profile(self) -> None:
        profile = self.controller.selected_profile
        if profile is None:
            return
        dialog = ConnectionDialog(self.root, title="Edit Profile", controller=self.controller, profile=profile)
        updated = dialog.show()
        if updated:
            self._save_profile(updated)

    def delete_profile(self) -> None:
        profile = self.controller.selected_profile
        if profile is None:
            return
        if not messagebox.askyesno("Delete Profile", f"Delete profile '{profile.name}'?", parent=self.root):
            return
        self.controller.delete_profile(profile.id)
        self._refresh_profiles()
        self._apply_selected_profile(restore=False)
        self._set_status("Profile deleted.")

    def test_connection(self) -> None:
        if self.controller.selected_profile is None:
            self._set_status("Select a profile first.")
            return
        self._start_operation()
        self.presenter.test_connection(
            on_success=self._handle_connection_result,
            on_error=self._show_error,
            on_done=self._end_operation,
        )

    def load_buckets(self) -> None:
        if self.controller.selected_profile is None:
            self._set_status("Select a profile first.")
            return
        self._start_operation()
        self.presenter.load_buckets(
            on_success=self._handle_buckets,
            on_error=self._show_error,
            on_done=self._end_operation,
        )

    def open_bucket(self) -> None:
        if self._operation_in_progress:
            return
        self._start_operation()
        self.presenter.open_bucket(self.bucket_name_var.get(), **self._navigation_callbacks())

    def open_folder(self, folder_prefix: str) -> None:
        self._start_operation()
        self.presenter.open_folder(folder_prefix, **self._navigation_callbacks())

    def up_one_level(self) -> None:
        self._start_operation()
        self.presenter.up_one_level(**self._navigation_callbacks())

    def navigate_to_prefix(self, prefix: str) -> None:
        if self._operation_in_progress:
            return
        self._start_operation()
        self.presenter.navigate_to_prefix(prefix, **self._navigation_callbacks())

    def load_next_page(self) -> None:
        self._start_operation()
        self.presenter.load_next_page(**self._navigation_callbacks())

    def load_first_page(self) -> None:
        self._start_operation()
        self.presenter.load_first_page(**self._navigation_callbacks())

    def download_selected(self) -> None:
        key = self._selected_file_key()
        if not key:
            return
        destination = filedialog.asksaveasfilename(
            parent=self.root,
            title="Save Object As",
            initialfile=filename_from_key(key),
        )
        if not destination:
            return
        self._start_operation()
        self.presenter.download_object(
            key=key,
            destination=destination,
            on_success=lambda path: self._set_status(f"Saved {Path(path).name}."),
            on_error=self._show_error,
            on_done=self._end_operation,
        )

    def _navigation_callbacks(self) -> dict:
        return {
            "on_success": self._render_state,
            "on_error": self._show_error,
            "on_done": self._end_operation,
        }

    def _save_profile(self, profile: ConnectionProfile) -> None:
        try:
            saved = self.controller.save_profile(profile)
        except GatewayError as exc:
            messagebox.showerror("Error", exc.message, parent=self.root)
            return
        self._refresh_profiles()
        self._apply_selected_profile(restore=False)
        self._set_status(f"Profile '{saved.name}' saved.")

    def _on_profile_selected(self) -> None:
        selection = self.profile_list.curselection()
        if not selection or self._operation_in_progress:
            return
        profile_id = self._profile_ids[selection[0]]
        if profile_id == getattr(self.controller.selected_profile, "id", None):
            return
        self.controller.select_profile(profile_id)
        self._apply_selected_profile(restore=True)

    def _refresh_profiles(self) -> None:
        profiles = self.controller.list_profiles()
        self._profile_ids = [profile.id for profile in profiles]
        self.profile_list.delete(0, tk.END)
        for profile in profiles:
            self.profile_list.insert(tk.END, profile.name or profile.endpoint)
        selected = self.controller.selected_profile
        if selected is not None and selected.id in self._profile_ids:
            index = self._profile_ids.index(selected.id)
            self.profile_list.selection_clear(0, tk.END)
            self.profile_list.selection_set(index)

    def _apply_selected_profile(self, *, restore: bool) -> None:
        self._bucket_names = []
        self.bucket_combo["values"] = ()
        view = self.controller.current_view()
        self.bucket_name_var.set(view.manual_bucket_name or view.bucket)
        self._render_state(self.controller.state)
        if restore and self.controller.selected_profile is not None:
            self._start_operation()
            started = self.presenter.restore_last_view(**self._navigation_callbacks())
            if not started:
                self._end_operation()

    def _handle_connection_result(self, result: ConnectionResult) -> None:
        self._set_status(result.message)

    def _handle_buckets(self, buckets: list[BucketInfo]) -> None:
        self._bucket_names = [bucket.name for bucket in buckets]
        self.bucket_combo["values"] = self._bucket_names
        self._set_status(f"Loaded {len(buckets)} bucket(s).")

    def _render_state(self, state: NavigatorState) -> None:
        for item in self.results_tree.get_children():
            self.results_tree.delete(item)
        self._row_targets.clear()
        self._render_breadcrumbs(state)
        page = state.page
        if page is not None:
            for folder in page.folders:
                item = self.results_tree.insert(
                    "",
                    tk.END,
                    text=f"{folder_display_name(folder, state.prefix)}/",
                    values=("folder", "-"),
                    tags=(FOLDER_TAG,),
                )
                self._row_targets[item] = (FOLDER_TAG, folder)
            for entry in page.files:
                item = self.results_tree.insert(
                    "",
                    tk.END,
                    text=file_display_name(entry.key, state.prefix),
                    values=(format_size(entry.size), format_last_modified(entry.last_modified)),
                    tags=(FILE_TAG,),
                )
                self._row_targets[item] = (FILE_TAG, entry.key)
            if page.is_empty:
                self._set_status("This path is empty.")
            else:
                self._set_status(f"Loaded {page.item_count} item(s) from {state.bucket}.")
        self._refresh_controls()

    def _render_breadcrumbs(self, state: NavigatorState) -> None:
        for child in self.breadcrumb_frame.winfo_children():
            child.destroy()
        if not state.is_open:
            ttk.Label(self.breadcrumb_frame, text="Bucket path will appear here.").grid(row=0, column=0)
            return
        for index, crumb in enumerate(breadcrumbs(state.prefix, state.bucket)):
            if index:
                ttk.Label(self.breadcrumb_frame, text="/").grid(row=0, column=index * 2 - 1)
            ttk.Button(
                self.breadcrumb_frame,
                text=crumb.label,
                command=lambda target=crumb.prefix: self.navigate_to_prefix(target),
            ).grid(row=0, column=index * 2)

    def _handle_tree_double_click(self, event) -> None:
        if self._operation_in_progress:
            return
        item = self.results_tree.identify_row(event.y)
        target = self._row_targets.get(item)
        if not target:
            return
        kind, value = target
        if kind == FOLDER_TAG:
            self.open_folder(value)
        else:
            self.download_selected()

    def _selected_file_key(self) -> str | None:
        selection = self.results_tree.selection()
        if not selection:
            return None
        target = self._row_targets.get(selection[0])
        if not target or target[0] != FILE_TAG:
            return None
        return target[1]

    def _start_operation(self) -> None:
        self._operation_in_progress = True
        self.progress.start()
        self._refresh_controls()

    def _end_operation(self) -> None:
        self._operation_in_progress = False
        self.progress.stop()
        self._refresh_controls()

    def _refresh_controls(self) -> None:
        busy = self._operation_in_progress
        state = self.controller.state
        has_profile = self.controller.selected_profile is not None

        def _set(button: ttk.Button, enabled: bool) -> None:
            button.configure(state="normal" if enabled else "disabled")

        _set(self.load_buckets_button, has_profile and not busy)
        _set(self.open_bucket_button, has_profile and not busy)
        _set(self.up_button, state.is_open and not busy)
        _set(self.first_page_button, state.can_load_first_page and not busy)
        _set(self.next_page_button, state.can_load_next_page and not busy)
        _set(self.download_button, bool(self._selected_file_key()) and not busy)

    def _set_status(self, message: str) -> None:
        self.status_var.set(message)

    def _show_error(self, message: str) -> None:
        # The last page stays on screen; only the status line changes.
        self._set_status(f"Error: {message}")


class ConnectionDialog:
    """Simple modal dialog for creating or editing connection profiles."""

    def __init__(
        self,
        parent: tk.Tk,
        *,
        title: str,
        controller: ExplorerController,
        profile: ConnectionProfile | None = None,
    ):
        self.parent = parent
        self.result: ConnectionProfile | None = None
        self._controller = controller
        self._profile_id = profile.id if profile else None

        self.top = tk.Toplevel(parent)
        self.top.title(title)
        self.top.transient(parent)
        self.top.resizable(False, False)
        self.top.grab_set()

        content = ttk.Frame(self.top, padding="10")
        content.grid(row=0, column=0, sticky=(tk.W, tk.E, tk.N, tk.S))

        self.name_var = tk.StringVar(value=profile.name if profile else "")
        self.endpoint_var = tk.StringVar(value=profile.endpoint if profile else "")
        self.region_var = tk.StringVar(value=profile.region if profile else controller.settings.default_region)
        self.access_key_var = tk.StringVar(value=profile.access_key_id if profile else "")
        self.secret_key_var = tk.StringVar(value=profile.secret_access_key if profile else "")
        self.path_style_var = tk.BooleanVar(value=profile.force_path_style if profile else True)

        rows = [
            ("Name:", self.name_var, None),
            ("Endpoint URL:", self.endpoint_var, None),
            ("Region:", self.region_var, None),
            ("Access Key ID:", self.access_key_var, None),
            ("Secret Access Key:", self.secret_key_var, "*"),
        ]
        for row, (label, variable, show) in enumerate(rows):
            ttk.Label(content, text=label).grid(row=row, column=0, sticky=tk.W, pady=2)
            entry = ttk.Entry(content, textvariable=variable, width=40)
            if show:
                entry.configure(show=show)
            entry.grid(row=row, column=1, sticky=(tk.W, tk.E), pady=2)
        ttk.Checkbutton(content, text="Force path-style addressing", variable=self.path_style_var).grid(
            row=len(rows), column=1, sticky=tk.W, pady=2
        )

        buttons = ttk.Frame(content)
        buttons.grid(row=len(rows) + 1, column=0, columnspan=2, pady=(10, 0), sticky=tk.E)
        ttk.Button(buttons, text="Save", command=self._on_save).grid(row=0, column=0, padx=5)
        ttk.Button(buttons, text="Cancel", command=self._on_cancel).grid(row=0, column=1, padx=5)

        self.top.protocol("WM_DELETE_WINDOW", self._on_cancel)

    def show(self) -> ConnectionProfile | None:
        self.parent.wait_window(self.top)
        return self.result

    def _on_save(self) -> None:
        try:
            profile = self._controller.build_profile(
                name=self.name_var.get(),
                endpoint=self.endpoint_var.get(),
                region=self.region_var.get(),
                access_key_id=self.access_key_var.get(),
                secret_access_key=self.secret_key_var.get(),
                force_path_style=self.path_style_var.get(),
                profile_id=self._profile_id,
            )
        except GatewayError:
            messagebox.showerror("Error", "Endpoint, access key ID, and secret key are required.", parent=self.top)
            return
        self.result = profile
        self.top.destroy()

    def _on_cancel(self) -> None:
        self.result = None
        self.top.destroy()
