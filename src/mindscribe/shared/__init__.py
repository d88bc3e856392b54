"""Cross-cutting helpers shared by every MindScribe domain."""
